"""
core/formatter.py -- Renders CRM records (users, orders, products, dashboard) to terminal output, JSON or CSV.

Input is always plain decoded JSON (dicts with camelCase keys) or a
PaginatedCollection of such dicts, exactly as the request gateway returns it.
"""

import csv
import io
import json
import os
import re
import sys
from typing import Any, Optional

from core.models import PaginatedCollection

W = 78  # output width

# ---------------------------------------------------------------------------
# ANSI color control
# ---------------------------------------------------------------------------

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from a string."""
    return _ANSI_RE.sub("", text)


def _use_color() -> bool:
    """Return True if stdout is a TTY and color has not been disabled.

    Respects NO_COLOR env var (https://no-color.org) and checks sys.stdout.isatty().
    Can be overridden by calling disable_color() / enable_color().
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


_color_enabled: Optional[bool] = None  # None = auto-detect


def disable_color() -> None:
    """Force-disable color output (called when --no-color flag is set)."""
    global _color_enabled
    _color_enabled = False


def enable_color() -> None:
    """Force-enable color output."""
    global _color_enabled
    _color_enabled = True


def _color_active() -> bool:
    if _color_enabled is not None:
        return _color_enabled
    return _use_color()


# ---------------------------------------------------------------------------
# ANSI code helpers: empty strings when color is off
# ---------------------------------------------------------------------------

STATUS_COLORS = {
    "active": "\033[92m",  # green
    "completed": "\033[92m",
    "paid": "\033[92m",
    "processing": "\033[94m",  # blue
    "pending": "\033[93m",  # yellow
    "inactive": "\033[2m",  # dim
    "suspended": "\033[91m",  # red
    "cancelled": "\033[91m",
    "failed": "\033[91m",
}


def _reset() -> str:
    return "\033[0m" if _color_active() else ""


def _bold() -> str:
    return "\033[1m" if _color_active() else ""


def _dim() -> str:
    return "\033[2m" if _color_active() else ""


def _red() -> str:
    return "\033[91m" if _color_active() else ""


def _green() -> str:
    return "\033[92m" if _color_active() else ""


def _s_color(status: str) -> str:
    return STATUS_COLORS.get(status, "") if _color_active() else ""


# ---------------------------------------------------------------------------
# Layout helpers
# ---------------------------------------------------------------------------


def _bar(char: str = "═") -> str:
    return char * W


def _section(title: str) -> str:
    bold = _bold()
    reset = _reset()
    return f"\n  {bold}{title}{reset}\n  {'─' * (W - 2)}"


def _cell(value: Any, width: int) -> str:
    text = "" if value is None else str(value)
    if len(text) > width:
        text = text[: width - 1] + "…"
    return f"{text:<{width}}"


def _money(value: Any) -> str:
    try:
        return f"{float(value):,.2f}"
    except (TypeError, ValueError):
        return "N/A"


def _pager(page: PaginatedCollection) -> str:
    dim = _dim()
    reset = _reset()
    return f"  {dim}Page {page.page} of {max(page.total_pages, 1)}  ·  {page.total} total{reset}"


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


def print_notification(title: str, description: str, destructive: bool = False) -> None:
    """Print a one-line notification to stderr, red when destructive."""
    color = _red() if destructive else _green()
    print(f"  {color}{_bold()}{title}{_reset()}  {description}", file=sys.stderr)


# ---------------------------------------------------------------------------
# Table renderers
# ---------------------------------------------------------------------------


def print_users(page: PaginatedCollection) -> None:
    bold = _bold()
    reset = _reset()

    print(f"\n  {bold}{'ID':<10} {'NAME':<22} {'EMAIL':<28} {'ROLE':<8} STATUS{reset}")
    print(f"  {'─' * (W - 2)}")
    if not page.items:
        print("  No users found.")
    for user in page.items:
        status = user.get("status") or ""
        print(
            f"  {_cell(user.get('id'), 10)} {_cell(user.get('name'), 22)} "
            f"{_cell(user.get('email'), 28)} {_cell(user.get('role'), 8)} {_s_color(status)}{status}{reset}"
        )
    print(_pager(page))
    print()


def print_orders(page: PaginatedCollection) -> None:
    bold = _bold()
    reset = _reset()

    print(f"\n  {bold}{'ID':<12} {'CUSTOMER':<24} {'TOTAL':>12}  {'STATUS':<11} PAYMENT{reset}")
    print(f"  {'─' * (W - 2)}")
    if not page.items:
        print("  No orders found.")
    for order in page.items:
        status = order.get("status") or ""
        payment = order.get("paymentStatus") or ""
        print(
            f"  {_cell(order.get('id'), 12)} {_cell(order.get('customerName'), 24)} "
            f"{_money(order.get('total')):>12}  {_s_color(status)}{_cell(status, 11)}{reset} "
            f"{_s_color(payment)}{payment}{reset}"
        )
    print(_pager(page))
    print()


def print_products(page: PaginatedCollection) -> None:
    bold = _bold()
    reset = _reset()

    print(f"\n  {bold}{'ID':<10} {'NAME':<28} {'CATEGORY':<14} {'PRICE':>10} {'STOCK':>6}{reset}")
    print(f"  {'─' * (W - 2)}")
    if not page.items:
        print("  No products found.")
    for product in page.items:
        print(
            f"  {_cell(product.get('id'), 10)} {_cell(product.get('name'), 28)} "
            f"{_cell(product.get('category'), 14)} {_money(product.get('price')):>10} {product.get('stock', ''):>6}"
        )
    print(_pager(page))
    print()


def print_record(title: str, record: dict[str, Any]) -> None:
    """Print a single object as aligned key/value lines."""
    print(_section(title))
    for key, value in record.items():
        if isinstance(value, (list, dict)):
            value = json.dumps(value, default=str)
        print(f"    {key:<20} {value}")
    print()


def print_list(title: str, values: list[Any]) -> None:
    print(_section(title))
    if not values:
        print("    (none)")
    for value in values:
        print(f"    • {value}")
    print()


# ---------------------------------------------------------------------------
# Dashboard renderer
# ---------------------------------------------------------------------------


def print_dashboard(stats: dict[str, Any], placeholder: bool = False) -> None:
    """Render /analytics/dashboard data (camelCase keys)."""
    bold = _bold()
    reset = _reset()
    dim = _dim()

    print(f"\n{bold}{_bar()}{reset}")
    print(f"  {bold}DASHBOARD{reset}")
    print(f"{bold}{_bar()}{reset}")
    if placeholder:
        print(f"  {dim}Live metrics unavailable; showing placeholder figures.{reset}")

    print(_section("KEY METRICS"))
    for label, value in [
        ("Users", f"{stats.get('totalUsers', 0):,}"),
        ("Orders", f"{stats.get('totalOrders', 0):,}"),
        ("Revenue", _money(stats.get("totalRevenue"))),
        ("Average order value", _money(stats.get("averageOrderValue"))),
    ]:
        print(f"    {label:<22} {value}")

    recent = stats.get("recentOrders") or []
    if recent:
        print(_section("RECENT ORDERS"))
        for order in recent[:5]:
            status = order.get("status") or ""
            print(
                f"    {_cell(order.get('id'), 12)} {_cell(order.get('customerName'), 24)} "
                f"{_money(order.get('total')):>12}  {_s_color(status)}{status}{reset}"
            )

    top = stats.get("topProducts") or []
    if top:
        print(_section("TOP PRODUCTS"))
        for product in top[:5]:
            print(f"    {_cell(product.get('name'), 30)} {product.get('soldCount', 0):>6} sold")

    print(f"\n{_bar()}\n")


# ---------------------------------------------------------------------------
# JSON export
# ---------------------------------------------------------------------------


def to_json(data: Any) -> str:
    if isinstance(data, PaginatedCollection):
        data = {
            "items": data.items,
            "total": data.total,
            "page": data.page,
            "pageSize": data.page_size,
            "totalPages": data.total_pages,
        }
    return json.dumps(data, indent=2, default=str)


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------

# Spreadsheet apps evaluate cells starting with these as formulas (CWE-1236).
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def _sanitize_csv_cell(value: Any) -> Any:
    """Prefix formula-looking strings with a tab so spreadsheets treat them as text."""
    if isinstance(value, str) and value.startswith(_FORMULA_PREFIXES):
        return "\t" + value
    return value


USER_CSV_COLUMNS = ["id", "name", "email", "role", "status", "createdAt"]


def to_csv(rows: list[dict[str, Any]], columns: Optional[list[str]] = None) -> str:
    """Render rows as CSV. Columns default to USER_CSV_COLUMNS; missing keys become empty cells."""
    columns = columns or USER_CSV_COLUMNS
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(columns)
    for row in rows:
        writer.writerow([_sanitize_csv_cell(row.get(col, "")) for col in columns])
    return buf.getvalue()

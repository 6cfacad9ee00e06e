#!/usr/bin/env python3
"""
crm-console -- Terminal admin console for the CRM REST API.

Every invocation restores the persisted session first, then runs one command.
Commands other than login, register and logout need a signed-in session.

Usage:
  crm-console login --email admin@example.com
  crm-console register --name "Jane Cooper" --email jane@example.com
  crm-console whoami
  crm-console dashboard
  crm-console users list --search jane --status active
  crm-console users create --name "Robert Fox" --email robert@example.com --role manager
  crm-console users export --output users.csv
  crm-console orders list --status pending --from 2024-01-01
  crm-console products list --category Electronics --max-price 200
  crm-console analytics revenue --group-by week
  crm-console --json users show u1
  crm-console logout

Environment variables:
  API_URL          Base URL of the REST backend (default https://api.example.com/v1)
  REQUEST_TIMEOUT  Per-request deadline in seconds (default 15)
  TOKEN_DB_URL     Where the session token is persisted (default ~/.crm-console/session.db)
  LOG_LEVEL        Logging level (default WARNING; --verbose forces DEBUG)
"""

import argparse
import asyncio
import getpass
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from api.models import (
    ExportFormatEnum,
    GroupByEnum,
    OrderStatusEnum,
    RoleEnum,
    UserCreateData,
    UserStatusEnum,
    UserUpdateData,
)
from auth.models import Notification, Variant
from auth.session import FILL_ALL_FIELDS, SessionManager
from auth.store import TokenStore
from core.config import get_settings
from core.formatter import (
    disable_color,
    print_dashboard,
    print_list,
    print_notification,
    print_orders,
    print_products,
    print_record,
    print_users,
    to_json,
)
from core.gateway import RequestGateway
from core.models import LANDING_VIEW, LOGIN_VIEW, REGISTER_VIEW, Envelope, PaginatedCollection
from services.base import parse_page
from services.client import ApiClient
from web.dashboard import load_dashboard_stats
from web.guards import RouteKind
from web.shell import AppShell

logger = logging.getLogger("crmconsole.cli")

# ---------------------------------------------------------------------------
# Terminal collaborators for the application shell
# ---------------------------------------------------------------------------

_NEXT_STEP = {
    LOGIN_VIEW: "crm-console login",
    REGISTER_VIEW: "crm-console register",
    LANDING_VIEW: "crm-console dashboard",
}


class TerminalNotifier:
    def notify(self, notification: Notification) -> None:
        print_notification(
            notification.title,
            notification.description,
            destructive=notification.variant is Variant.DESTRUCTIVE,
        )


class TerminalNavigator:
    """A console has no screens to switch; navigating prints the next command to run."""

    def __init__(self, current_view: str) -> None:
        self.current_view = current_view
        self.history: list[str] = []

    def navigate(self, view: str) -> None:
        self.history.append(view)
        self.current_view = view
        hint = _NEXT_STEP.get(view)
        if hint:
            print(f"  → Next: {hint}", file=sys.stderr)


@dataclass
class Console:
    api: ApiClient
    shell: AppShell
    json_output: bool = False


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _fail(message: str) -> int:
    print_notification("Error", message, destructive=True)
    return 1


def _failed(envelope: Envelope) -> int:
    return _fail(envelope.user_message)


def _emit(console: Console, envelope: Envelope, render: Callable[[Any], None]) -> int:
    """Print a successful envelope's data (JSON or terminal), or report the failure."""
    if not envelope.success:
        return _failed(envelope)
    if console.json_output:
        print(to_json(envelope.data))
    else:
        render(envelope.data)
    if envelope.message and not console.json_output:
        print_notification("Done", envelope.message)
    return 0


def _emit_page(console: Console, envelope: Envelope, render: Callable[[PaginatedCollection], None]) -> int:
    if not envelope.success:
        return _failed(envelope)
    try:
        page = parse_page(envelope)
    except (ValueError, TypeError) as e:
        logger.debug("Unexpected list payload: %s", e)
        return _fail("The server returned an unexpected list response.")
    if console.json_output:
        print(to_json(page))
    else:
        render(page)
    return 0


def _emit_export(envelope: Envelope, output: Optional[str]) -> int:
    if not envelope.success:
        return _failed(envelope)
    text = envelope.data if isinstance(envelope.data, str) else to_json(envelope.data)
    if output:
        try:
            Path(output).write_text(text, encoding="utf-8")
        except OSError as e:
            return _fail(f"Could not write '{output}': {e}")
        print_notification("Exported", f"Wrote {output}")
    else:
        sys.stdout.write(text)
    return 0


def _prompt_secret(value: Optional[str], label: str) -> str:
    return value if value is not None else getpass.getpass(f"{label}: ")


def _prompt(value: Optional[str], label: str) -> str:
    return value if value is not None else input(f"{label}: ")


# ---------------------------------------------------------------------------
# Session commands
# ---------------------------------------------------------------------------


async def cmd_login(console: Console, args: argparse.Namespace) -> int:
    email = _prompt(args.email, "Email")
    password = _prompt_secret(args.password, "Password")
    result = await console.shell.login(email, password)
    return 0 if result.ok else 1


async def cmd_register(console: Console, args: argparse.Namespace) -> int:
    name = _prompt(args.name, "Name")
    email = _prompt(args.email, "Email")
    password = _prompt_secret(args.password, "Password")
    confirm = _prompt_secret(args.confirm_password, "Confirm password")
    result = await console.shell.register(name, email, password, confirm)
    return 0 if result.ok else 1


async def cmd_logout(console: Console, args: argparse.Namespace) -> int:
    await console.shell.logout()
    return 0


async def cmd_whoami(console: Console, args: argparse.Namespace) -> int:
    user = console.shell.sessions.current_user
    record = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "status": user.status,
        "createdAt": user.created_at,
    }
    if console.json_output:
        print(to_json(record))
    else:
        print_record("SIGNED IN AS", record)
    return 0


async def cmd_dashboard(console: Console, args: argparse.Namespace) -> int:
    stats, placeholder = await load_dashboard_stats(console.api)
    if console.json_output:
        print(to_json({"placeholder": placeholder, "stats": stats.to_wire()}))
    else:
        print_dashboard(stats.to_wire(), placeholder=placeholder)
    return 0


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def cmd_users_list(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.users.get_all(args.page, args.limit, args.search, args.role, args.status)
    return _emit_page(console, envelope, print_users)


async def cmd_users_show(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.users.get_by_id(args.id)
    return _emit(console, envelope, lambda data: print_record("USER", data))


async def cmd_users_create(console: Console, args: argparse.Namespace) -> int:
    password = _prompt_secret(args.password, "Password")
    if not all(value and value.strip() for value in (args.name, args.email, password)):
        return _fail(FILL_ALL_FIELDS)
    try:
        data = UserCreateData(name=args.name, email=args.email, password=password, role=args.role)
    except ValidationError as e:
        return _fail(f"Invalid user: {e.errors()[0]['msg']}")
    envelope = await console.api.users.create(data)
    return _emit(console, envelope, lambda created: print_record("USER CREATED", created))


async def cmd_users_update(console: Console, args: argparse.Namespace) -> int:
    try:
        data = UserUpdateData(name=args.name, email=args.email, role=args.role, status=args.status)
    except ValidationError as e:
        return _fail(f"Invalid update: {e.errors()[0]['msg']}")
    if not data.to_wire():
        return _fail("Nothing to update. Pass at least one of --name, --email, --role, --status.")
    envelope = await console.api.users.update(args.id, data)
    return _emit(console, envelope, lambda updated: print_record("USER UPDATED", updated))


async def cmd_users_delete(console: Console, args: argparse.Namespace) -> int:
    if not args.yes:
        answer = input(f"Delete user {args.id}? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("  Cancelled.")
            return 1
    envelope = await console.api.users.delete(args.id)
    if not envelope.success:
        return _failed(envelope)
    print_notification("Deleted", f"User {args.id} was deleted.")
    return 0


async def cmd_users_export(console: Console, args: argparse.Namespace) -> int:
    return _emit_export(await console.api.users.export(args.format), args.output)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


async def cmd_orders_list(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.orders.get_all(
        args.page, args.limit, args.search, args.status, args.from_, args.to
    )
    return _emit_page(console, envelope, print_orders)


async def cmd_orders_show(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.orders.get_by_id(args.id)
    return _emit(console, envelope, lambda data: print_record("ORDER", data))


async def cmd_orders_by_user(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.orders.get_by_user(args.user_id, args.page, args.limit)
    return _emit_page(console, envelope, print_orders)


async def cmd_orders_export(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.orders.export(args.format, args.from_, args.to, args.status)
    return _emit_export(envelope, args.output)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


async def cmd_products_list(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.products.get_all(
        args.page, args.limit, args.search, args.category, args.min_price, args.max_price
    )
    return _emit_page(console, envelope, print_products)


async def cmd_products_show(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.products.get_by_id(args.id)
    return _emit(console, envelope, lambda data: print_record("PRODUCT", data))


async def cmd_products_categories(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.products.get_categories()
    return _emit(console, envelope, lambda data: print_list("CATEGORIES", list(data or [])))


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


async def cmd_analytics_users(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.analytics.get_user_stats(args.from_, args.to)
    return _emit(console, envelope, lambda data: print_record("USER STATISTICS", data))


async def cmd_analytics_orders(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.analytics.get_order_stats(args.from_, args.to)
    return _emit(console, envelope, lambda data: print_record("ORDER STATISTICS", data))


async def cmd_analytics_revenue(console: Console, args: argparse.Namespace) -> int:
    envelope = await console.api.analytics.get_revenue_stats(args.from_, args.to, args.group_by)
    return _emit(console, envelope, lambda data: print_record("REVENUE", data))


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_paging(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--page", type=int, default=None, help="Page number (1-based)")
    parser.add_argument("--limit", type=int, default=None, help="Items per page")


def _add_range(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--from", dest="from_", metavar="DATE", default=None, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--to", metavar="DATE", default=None, help="End date (YYYY-MM-DD)")


def _add_export(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=[f.value for f in ExportFormatEnum],
        default=ExportFormatEnum.csv.value,
        help="Export format (default: csv)",
    )
    parser.add_argument("--output", "-o", metavar="PATH", help="Write to PATH instead of stdout")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crm-console",
        description="Terminal admin console for the CRM REST API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  crm-console login --email admin@example.com
  crm-console users list --search jane
  crm-console --json orders show o7
  API_URL=http://127.0.0.1:8000/v1 crm-console dashboard
        """,
    )
    parser.add_argument("--json", action="store_true", help="Output structured JSON")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI color codes in terminal output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level to stderr")
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = commands.add_parser("login", help="Sign in and persist the session")
    p.add_argument("--email")
    p.add_argument("--password", help="Prompted for when omitted")
    p.set_defaults(handler=cmd_login, route=RouteKind.PUBLIC, view=LOGIN_VIEW)

    p = commands.add_parser("register", help="Create an account")
    p.add_argument("--name")
    p.add_argument("--email")
    p.add_argument("--password", help="Prompted for when omitted")
    p.add_argument("--confirm-password", help="Prompted for when omitted")
    p.set_defaults(handler=cmd_register, route=RouteKind.PUBLIC, view=REGISTER_VIEW)

    p = commands.add_parser("logout", help="Sign out and forget the persisted session")
    p.set_defaults(handler=cmd_logout, route=None, view=LANDING_VIEW)

    p = commands.add_parser("whoami", help="Show the signed-in user")
    p.set_defaults(handler=cmd_whoami, view="/profile")

    p = commands.add_parser("dashboard", help="Key metrics overview")
    p.set_defaults(handler=cmd_dashboard, view=LANDING_VIEW)

    # users
    users = commands.add_parser("users", help="Manage users").add_subparsers(dest="action", metavar="ACTION")
    users.required = True
    p = users.add_parser("list", help="List users")
    _add_paging(p)
    p.add_argument("--search")
    p.add_argument("--role", choices=[r.value for r in RoleEnum])
    p.add_argument("--status", choices=[s.value for s in UserStatusEnum])
    p.set_defaults(handler=cmd_users_list)
    p = users.add_parser("show", help="Show one user")
    p.add_argument("id")
    p.set_defaults(handler=cmd_users_show)
    p = users.add_parser("create", help="Create a user")
    p.add_argument("--name", required=True)
    p.add_argument("--email", required=True)
    p.add_argument("--password", help="Prompted for when omitted")
    p.add_argument("--role", choices=[r.value for r in RoleEnum], default=RoleEnum.user.value)
    p.set_defaults(handler=cmd_users_create)
    p = users.add_parser("update", help="Update a user")
    p.add_argument("id")
    p.add_argument("--name")
    p.add_argument("--email")
    p.add_argument("--role", choices=[r.value for r in RoleEnum])
    p.add_argument("--status", choices=[s.value for s in UserStatusEnum])
    p.set_defaults(handler=cmd_users_update)
    p = users.add_parser("delete", help="Delete a user")
    p.add_argument("id")
    p.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(handler=cmd_users_delete)
    p = users.add_parser("export", help="Export users")
    _add_export(p)
    p.set_defaults(handler=cmd_users_export)

    # orders
    orders = commands.add_parser("orders", help="Browse orders").add_subparsers(dest="action", metavar="ACTION")
    orders.required = True
    p = orders.add_parser("list", help="List orders")
    _add_paging(p)
    p.add_argument("--search")
    p.add_argument("--status", choices=[s.value for s in OrderStatusEnum])
    _add_range(p)
    p.set_defaults(handler=cmd_orders_list)
    p = orders.add_parser("show", help="Show one order")
    p.add_argument("id")
    p.set_defaults(handler=cmd_orders_show)
    p = orders.add_parser("by-user", help="List the orders of one user")
    p.add_argument("user_id")
    _add_paging(p)
    p.set_defaults(handler=cmd_orders_by_user)
    p = orders.add_parser("export", help="Export orders")
    _add_export(p)
    p.add_argument("--status", choices=[s.value for s in OrderStatusEnum])
    _add_range(p)
    p.set_defaults(handler=cmd_orders_export)

    # products
    products = commands.add_parser("products", help="Browse the catalog").add_subparsers(
        dest="action", metavar="ACTION"
    )
    products.required = True
    p = products.add_parser("list", help="List products")
    _add_paging(p)
    p.add_argument("--search")
    p.add_argument("--category")
    p.add_argument("--min-price", type=float)
    p.add_argument("--max-price", type=float)
    p.set_defaults(handler=cmd_products_list)
    p = products.add_parser("show", help="Show one product")
    p.add_argument("id")
    p.set_defaults(handler=cmd_products_show)
    p = products.add_parser("categories", help="List product categories")
    p.set_defaults(handler=cmd_products_categories)

    # analytics
    analytics = commands.add_parser("analytics", help="Aggregated statistics").add_subparsers(
        dest="action", metavar="ACTION"
    )
    analytics.required = True
    p = analytics.add_parser("users", help="User statistics")
    _add_range(p)
    p.set_defaults(handler=cmd_analytics_users)
    p = analytics.add_parser("orders", help="Order statistics")
    _add_range(p)
    p.set_defaults(handler=cmd_analytics_orders)
    p = analytics.add_parser("revenue", help="Revenue over time")
    _add_range(p)
    p.add_argument("--group-by", choices=[g.value for g in GroupByEnum], default=None)
    p.set_defaults(handler=cmd_analytics_revenue)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def run(args: argparse.Namespace) -> int:
    """Bootstrap the session, apply the route guard, run the command."""
    tokens = TokenStore()
    gateway = RequestGateway(tokens)
    api = ApiClient(gateway)
    sessions = SessionManager(api.auth, tokens)
    view = getattr(args, "view", None) or f"/{args.command}"
    shell = AppShell(sessions, gateway, TerminalNotifier(), TerminalNavigator(view))
    console = Console(api=api, shell=shell, json_output=args.json)
    try:
        await shell.start()
        route = getattr(args, "route", RouteKind.PROTECTED)
        if route is not None:
            decision = shell.enforce(route)
            if not decision.allowed:
                if route is RouteKind.PUBLIC and sessions.current_user is not None:
                    print(f"  Already signed in as {sessions.current_user.email}.", file=sys.stderr)
                else:
                    print("  You need to sign in first.", file=sys.stderr)
                return 1
        return await args.handler(console, args)
    finally:
        shell.close()
        gateway.close()
        tokens.close()


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    if args.no_color:
        disable_color()

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"  [!] Invalid configuration: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.debug("Using API at %s", settings.api_url)

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\n  Interrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())

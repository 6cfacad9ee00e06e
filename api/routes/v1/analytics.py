"""
api/routes/v1/analytics.py -- Aggregated metrics for the console dashboard.

Routes:
  GET /v1/analytics/dashboard   -- DashboardStats
  GET /v1/analytics/users       -- totals by role/status and monthly sign-ups
  GET /v1/analytics/orders      -- totals by status/payment status and monthly counts
  GET /v1/analytics/revenue     -- paid revenue bucketed by groupBy (day|week|month)

Revenue counts paid orders that were not cancelled.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_current_user
from api.models import GroupByEnum, data_response
from api.store import DemoStore

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/analytics/dashboard")
def dashboard(request: Request) -> dict:
    store: DemoStore = request.app.state.store
    return data_response(store.dashboard())


@router.get("/analytics/users")
def user_stats(
    request: Request,
    from_: Optional[str] = Query(default=None, alias="from"),
    to: Optional[str] = None,
) -> dict:
    store: DemoStore = request.app.state.store
    return data_response(store.user_stats(from_, to))


@router.get("/analytics/orders")
def order_stats(
    request: Request,
    from_: Optional[str] = Query(default=None, alias="from"),
    to: Optional[str] = None,
) -> dict:
    store: DemoStore = request.app.state.store
    return data_response(store.order_stats(from_, to))


@router.get("/analytics/revenue")
def revenue_stats(
    request: Request,
    from_: Optional[str] = Query(default=None, alias="from"),
    to: Optional[str] = None,
    group_by: GroupByEnum = Query(default=GroupByEnum.month, alias="groupBy"),
) -> dict:
    store: DemoStore = request.app.state.store
    return data_response(store.revenue_stats(from_, to, group_by.value))

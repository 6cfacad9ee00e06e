"""
api/routes/v1/orders.py -- Order endpoints of the demo backend.

Routes (export registered before /orders/{order_id}):
  GET    /v1/orders                   -- paginated list; filters: search, status, from, to
  GET    /v1/orders/export            -- CSV of the filtered orders in data
  GET    /v1/orders/{order_id}        -- one order
  POST   /v1/orders                   -- create; total is computed from the items
  PUT    /v1/orders/{order_id}        -- update status / paymentStatus
  DELETE /v1/orders/{order_id}        -- delete; 204
  GET    /v1/users/{user_id}/orders   -- paginated orders of one user
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.dependencies import get_current_user
from api.limiter import limiter
from api.models import ExportFormatEnum, OrderCreateData, OrderUpdateData, data_response
from api.store import DemoStore
from core.formatter import to_csv

router = APIRouter(dependencies=[Depends(get_current_user)])

ORDER_CSV_COLUMNS = ["id", "customerName", "customerEmail", "total", "status", "paymentStatus", "createdAt"]


def _not_found(order_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "not_found", "message": f"Order {order_id} not found."},
    )


@limiter.limit("60/minute")
@router.get("/orders")
def list_orders(
    request: Request,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    status: Optional[str] = None,
    from_: Optional[str] = Query(default=None, alias="from"),
    to: Optional[str] = None,
) -> dict:
    store: DemoStore = request.app.state.store
    return data_response(store.list_orders(page, limit, search, status, from_, to))


@router.get("/orders/export")
def export_orders(
    request: Request,
    format: ExportFormatEnum = ExportFormatEnum.csv,
    status: Optional[str] = None,
    from_: Optional[str] = Query(default=None, alias="from"),
    to: Optional[str] = None,
) -> dict:
    if format is not ExportFormatEnum.csv:
        raise HTTPException(
            status_code=400,
            detail={"code": "unsupported_format", "message": "Only CSV export is available."},
        )
    store: DemoStore = request.app.state.store
    rows = [order.to_wire() for order in store.filter_orders(status=status, from_=from_, to=to)]
    return data_response(to_csv(rows, ORDER_CSV_COLUMNS))


@router.get("/orders/{order_id}")
def get_order(request: Request, order_id: str) -> dict:
    store: DemoStore = request.app.state.store
    order = store.get_order(order_id)
    if order is None:
        raise _not_found(order_id)
    return data_response(order)


@router.post("/orders", status_code=201)
def create_order(request: Request, body: OrderCreateData) -> dict:
    store: DemoStore = request.app.state.store
    if store.get_user(body.user_id) is None:
        raise HTTPException(
            status_code=422,
            detail={"code": "unknown_user", "message": f"User {body.user_id} does not exist."},
        )
    order = store.create_order(body.user_id, body.customer_name, body.customer_email, body.items)
    return data_response(order, "Order created")


@router.put("/orders/{order_id}")
def update_order(request: Request, order_id: str, body: OrderUpdateData) -> dict:
    store: DemoStore = request.app.state.store
    order = store.update_order(order_id, status=body.status, payment_status=body.payment_status)
    if order is None:
        raise _not_found(order_id)
    return data_response(order, "Order updated")


@router.delete("/orders/{order_id}", status_code=204)
def delete_order(request: Request, order_id: str) -> Response:
    store: DemoStore = request.app.state.store
    if not store.delete_order(order_id):
        raise _not_found(order_id)
    return Response(status_code=204)


@router.get("/users/{user_id}/orders")
def orders_by_user(request: Request, user_id: str, page: int = 1, limit: int = 10) -> dict:
    store: DemoStore = request.app.state.store
    if store.get_user(user_id) is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": f"User {user_id} not found."},
        )
    return data_response(store.list_orders(page, limit, user_id=user_id))

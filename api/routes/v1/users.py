"""
api/routes/v1/users.py -- User management endpoints of the demo backend.

Routes (export registered before /users/{user_id} so the literal path wins):
  GET    /v1/users              -- paginated list; filters: search, role, status
  GET    /v1/users/export       -- CSV of the filtered users in data
  GET    /v1/users/{user_id}    -- one user
  POST   /v1/users              -- create (admin)
  PUT    /v1/users/{user_id}    -- update (admin)
  DELETE /v1/users/{user_id}    -- delete (admin); 204

Admins cannot delete their own account.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.dependencies import get_current_user, require_admin
from api.limiter import limiter
from api.models import ExportFormatEnum, UserCreateData, UserOut, UserUpdateData, data_response
from api.store import DemoStore
from core.formatter import USER_CSV_COLUMNS, to_csv

router = APIRouter(dependencies=[Depends(get_current_user)])


def _not_found(user_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "not_found", "message": f"User {user_id} not found."},
    )


def _csv_only(format: ExportFormatEnum) -> None:
    if format is not ExportFormatEnum.csv:
        raise HTTPException(
            status_code=400,
            detail={"code": "unsupported_format", "message": "Only CSV export is available."},
        )


@limiter.limit("60/minute")
@router.get("/users")
def list_users(
    request: Request,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    role: Optional[str] = None,
    status: Optional[str] = None,
) -> dict:
    store: DemoStore = request.app.state.store
    return data_response(store.list_users(page, limit, search, role, status))


@router.get("/users/export")
def export_users(
    request: Request,
    format: ExportFormatEnum = ExportFormatEnum.csv,
    search: Optional[str] = None,
    role: Optional[str] = None,
    status: Optional[str] = None,
) -> dict:
    _csv_only(format)
    store: DemoStore = request.app.state.store
    rows = [user.to_wire() for user in store.filter_users(search, role, status)]
    return data_response(to_csv(rows, USER_CSV_COLUMNS))


@router.get("/users/{user_id}")
def get_user(request: Request, user_id: str) -> dict:
    store: DemoStore = request.app.state.store
    user = store.get_user(user_id)
    if user is None:
        raise _not_found(user_id)
    return data_response(user)


@router.post("/users", status_code=201)
def create_user(request: Request, body: UserCreateData, admin: UserOut = Depends(require_admin)) -> dict:
    store: DemoStore = request.app.state.store
    try:
        user = store.create_user(body.name, body.email, body.password, role=body.role)
    except ValueError:
        raise HTTPException(
            status_code=409,
            detail={"code": "email_taken", "message": "An account with this email already exists."},
        ) from None
    return data_response(user, "User created")


@router.put("/users/{user_id}")
def update_user(
    request: Request,
    user_id: str,
    body: UserUpdateData,
    admin: UserOut = Depends(require_admin),
) -> dict:
    store: DemoStore = request.app.state.store
    try:
        user = store.update_user(user_id, name=body.name, email=body.email, role=body.role, status=body.status)
    except ValueError:
        raise HTTPException(
            status_code=409,
            detail={"code": "email_taken", "message": "An account with this email already exists."},
        ) from None
    if user is None:
        raise _not_found(user_id)
    return data_response(user, "User updated")


@router.delete("/users/{user_id}", status_code=204)
def delete_user(request: Request, user_id: str, admin: UserOut = Depends(require_admin)) -> Response:
    if user_id == admin.id:
        raise HTTPException(
            status_code=400,
            detail={"code": "cannot_delete_self", "message": "You cannot delete your own account."},
        )
    store: DemoStore = request.app.state.store
    if not store.delete_user(user_id):
        raise _not_found(user_id)
    return Response(status_code=204)

"""
api/routes/v1/products.py -- Product catalog endpoints of the demo backend.

Routes (categories registered before /products/{product_id}):
  GET    /v1/products                 -- paginated list; filters: search, category, minPrice, maxPrice
  GET    /v1/products/categories      -- sorted distinct category names
  GET    /v1/products/{product_id}    -- one product
  POST   /v1/products                 -- create (admin)
  PUT    /v1/products/{product_id}    -- update (admin)
  DELETE /v1/products/{product_id}    -- delete (admin); 204
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.dependencies import get_current_user, require_admin
from api.limiter import limiter
from api.models import ProductCreateData, ProductUpdateData, UserOut, data_response
from api.store import DemoStore

router = APIRouter(dependencies=[Depends(get_current_user)])


def _not_found(product_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "not_found", "message": f"Product {product_id} not found."},
    )


@limiter.limit("60/minute")
@router.get("/products")
def list_products(
    request: Request,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
) -> dict:
    store: DemoStore = request.app.state.store
    return data_response(store.list_products(page, limit, search, category, min_price, max_price))


@router.get("/products/categories")
def list_categories(request: Request) -> dict:
    store: DemoStore = request.app.state.store
    return data_response(store.categories())


@router.get("/products/{product_id}")
def get_product(request: Request, product_id: str) -> dict:
    store: DemoStore = request.app.state.store
    product = store.get_product(product_id)
    if product is None:
        raise _not_found(product_id)
    return data_response(product)


@router.post("/products", status_code=201)
def create_product(request: Request, body: ProductCreateData, admin: UserOut = Depends(require_admin)) -> dict:
    store: DemoStore = request.app.state.store
    product = store.create_product(**body.model_dump())
    return data_response(product, "Product created")


@router.put("/products/{product_id}")
def update_product(
    request: Request,
    product_id: str,
    body: ProductUpdateData,
    admin: UserOut = Depends(require_admin),
) -> dict:
    store: DemoStore = request.app.state.store
    product = store.update_product(product_id, **body.model_dump())
    if product is None:
        raise _not_found(product_id)
    return data_response(product, "Product updated")


@router.delete("/products/{product_id}", status_code=204)
def delete_product(request: Request, product_id: str, admin: UserOut = Depends(require_admin)) -> Response:
    store: DemoStore = request.app.state.store
    if not store.delete_product(product_id):
        raise _not_found(product_id)
    return Response(status_code=204)

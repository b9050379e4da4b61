"""FastAPI routes for the Inventory domain: stock records, levels and restocking."""

from fastapi import APIRouter, Depends

from catalogue.product.product import get_product
from inventory.api.schemas import InitializeStockRequest, RestockRequest, StockResponse
from inventory.stock.initialization import initialize_stock
from inventory.stock.receiving import restock
from inventory.stock.stock import get_stock, low_stock_records
from shared.errors import AuthorizationError
from shared.principal import Principal
from shared.web import get_actor, get_services, read_transaction, transaction

inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


def _ensure_can_manage(session, actor: Principal, product_id: int) -> None:
    product = get_product(session, product_id)
    if actor.is_admin:
        return
    if not actor.is_seller or product.seller_id != actor.user_id:
        raise AuthorizationError("Only the product's seller or an admin can manage its stock")


@inventory_router.post("", status_code=201, response_model=StockResponse)
def create_stock_record(
    body: InitializeStockRequest,
    actor: Principal = Depends(get_actor),
    services=Depends(get_services),
) -> StockResponse:
    threshold = body.low_stock_threshold
    if threshold is None:
        threshold = services.config.low_stock_threshold
    with transaction(services) as session:
        _ensure_can_manage(session, actor, body.product_id)
        record = initialize_stock(session, body.product_id, body.initial_quantity, threshold)
        return StockResponse.model_validate(record)


@inventory_router.get("/low-stock", response_model=list[StockResponse])
def low_stock(actor: Principal = Depends(get_actor), services=Depends(get_services)) -> list[StockResponse]:
    if actor.is_customer:
        raise AuthorizationError("Only sellers and admins can view low stock")
    with read_transaction(services) as session:
        records = low_stock_records(session, seller_id=actor.user_id if actor.is_seller else None)
        return [StockResponse.model_validate(record) for record in records]


@inventory_router.get("/{product_id}", response_model=StockResponse)
def show_stock(product_id: int, actor: Principal = Depends(get_actor), services=Depends(get_services)) -> StockResponse:  # noqa: ARG001
    with read_transaction(services) as session:
        return StockResponse.model_validate(get_stock(session, product_id))


@inventory_router.post("/{product_id}/restock", response_model=StockResponse)
def restock_product(
    product_id: int,
    body: RestockRequest,
    actor: Principal = Depends(get_actor),
    services=Depends(get_services),
) -> StockResponse:
    with transaction(services) as session:
        _ensure_can_manage(session, actor, product_id)
        return StockResponse.model_validate(restock(session, product_id, body.quantity))

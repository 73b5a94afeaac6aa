"""
Order endpoints — requester placement/history and provider workflow actions.

Provider actions never name a target status: accept/reject decide a placed
order, advance moves to the next production stage.
"""
import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from database import commit
from deps import Pagination, get_db, pagination_params
from domain.responses import paginated_response, success_response
from models import OrderCreateRequest, OrderResponse
from services import order_service
from utils.validators import validated_order_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])


def _provider_view(order) -> OrderResponse:
    return OrderResponse.from_order(order, include_delivery_code=False)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: OrderCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Place an order (requester). Starts at PLACED / PENDING_DEPOSIT."""
    order = await order_service.create_order(
        db,
        requester_ref=request.requester_ref,
        provider_ref=request.provider_ref,
        garment_type=request.garment_type,
        measurements=request.measurements,
        total_amount=request.payment.total_amount,
        deposit_amount=request.payment.deposit_amount,
        deposit_mode=request.payment.deposit_mode,
        items=request.items,
        provider_supplies_fabric=request.provider_supplies_fabric,
        handover_type=request.handover_type,
    )
    await commit(db)
    return success_response(data=OrderResponse.from_order(order))


@router.get("/requester/{requester_ref}")
async def list_requester_orders(
    requester_ref: str,
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    """Requester order history, newest first."""
    orders, total = await order_service.list_by_requester(
        db, requester_ref, limit=page["limit"], offset=page["offset"]
    )
    return paginated_response(
        [OrderResponse.from_order(o) for o in orders],
        limit=page["limit"],
        offset=page["offset"],
        total=total,
    )


@router.get("/provider/{provider_ref}")
async def list_provider_orders(
    provider_ref: str,
    status_filter: str | None = Query(None, alias="status", description="ongoing | all | <STATUS>"),
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    """Provider dashboard tab, most recently updated first."""
    orders, total = await order_service.list_by_provider(
        db,
        provider_ref,
        status_filter=status_filter,
        limit=page["limit"],
        offset=page["offset"],
    )
    return paginated_response(
        [_provider_view(o) for o in orders],
        limit=page["limit"],
        offset=page["offset"],
        total=total,
    )


@router.get("/provider/{provider_ref}/analytics")
async def provider_analytics(
    provider_ref: str,
    db: AsyncSession = Depends(get_db),
):
    today = await order_service.count_created_today(db, provider_ref)
    return success_response(data={"provider_ref": provider_ref, "today_orders": today})


@router.get("/{order_id}")
async def get_order(
    order_id: str = Depends(validated_order_id),
    audience: Literal["requester", "provider"] = Query("requester"),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.get_order(db, order_id)
    if audience == "provider":
        return success_response(data=_provider_view(order))
    return success_response(data=OrderResponse.from_order(order))


@router.post("/{order_id}/accept")
async def accept_order(
    order_id: str = Depends(validated_order_id),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.accept_order(db, order_id)
    await commit(db)
    return success_response(data=_provider_view(order))


@router.post("/{order_id}/reject")
async def reject_order(
    order_id: str = Depends(validated_order_id),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.reject_order(db, order_id)
    await commit(db)
    return success_response(data=_provider_view(order))


@router.post("/{order_id}/confirm-deposit")
async def confirm_deposit(
    order_id: str = Depends(validated_order_id),
    db: AsyncSession = Depends(get_db),
):
    """Provider confirms the deposit was received; the order moves to ACCEPTED."""
    order = await order_service.confirm_deposit(db, order_id)
    await commit(db)
    return success_response(data=_provider_view(order))


@router.post("/{order_id}/advance")
async def advance_order(
    order_id: str = Depends(validated_order_id),
    db: AsyncSession = Depends(get_db),
):
    """Next production stage (ACCEPTED → CUTTING → ... → DELIVERED)."""
    order = await order_service.advance_order(db, order_id)
    await commit(db)
    return success_response(data=_provider_view(order))

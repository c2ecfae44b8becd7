"""Coupon API router — platform coupon administration and coupon previews."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.api.deps import get_current_user, get_db, require_admin
from villastay.models.coupon import Coupon
from villastay.models.user import User
from villastay.schemas.common import ApiResponse
from villastay.schemas.coupon import (
    CouponApplyRequest,
    CouponApplyResponse,
    CouponCreate,
    CouponResponse,
    CouponStatusUpdate,
)
from villastay.services import coupons as coupon_service
from villastay.services.pricing import apply_discount, is_coupon_currently_valid, resolve_coupon

router = APIRouter(prefix="/api/v1/coupons", tags=["coupons"])


def _coupon_out(coupon: Coupon) -> CouponResponse:
    out = CouponResponse.model_validate(coupon)
    out.is_currently_valid = is_coupon_currently_valid(coupon)
    return out


@router.post(
    "",
    response_model=ApiResponse[CouponResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a platform coupon (admin)",
)
async def create_coupon(
    body: CouponCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ApiResponse[CouponResponse]:
    coupon = await coupon_service.create_coupon(db, **body.model_dump())
    return ApiResponse(message="Coupon created successfully", data=_coupon_out(coupon))


@router.get(
    "",
    response_model=ApiResponse[list[CouponResponse]],
    summary="List platform coupons (admin)",
)
async def list_coupons(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ApiResponse[list[CouponResponse]]:
    coupons = await coupon_service.list_coupons(db)
    return ApiResponse(message="Coupons fetched successfully", data=[_coupon_out(c) for c in coupons])


@router.patch(
    "/{coupon_id}",
    response_model=ApiResponse[CouponResponse],
    summary="Activate or deactivate a platform coupon (admin)",
)
async def update_coupon_status(
    coupon_id: uuid.UUID,
    body: CouponStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ApiResponse[CouponResponse]:
    coupon = await coupon_service.set_coupon_active(db, coupon_id, body.is_active)
    await db.refresh(coupon)
    return ApiResponse(message="Coupon status updated successfully", data=_coupon_out(coupon))


@router.delete(
    "/{coupon_id}",
    response_model=ApiResponse[None],
    summary="Delete a platform coupon (admin)",
)
async def delete_coupon(
    coupon_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ApiResponse[None]:
    await coupon_service.delete_coupon(db, coupon_id)
    return ApiResponse(message="Coupon deleted successfully")


@router.post(
    "/apply",
    response_model=ApiResponse[CouponApplyResponse],
    summary="Preview a coupon against an amount",
)
async def apply_coupon(
    body: CouponApplyRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[CouponApplyResponse]:
    """Resolve the coupon (platform first, then the property's host coupons) and price it.

    Nothing is recorded; usage is only counted when a booking is confirmed.
    """
    coupon = await resolve_coupon(db, body.coupon_code, body.property_id)
    result = apply_discount(body.total_amount, coupon)
    return ApiResponse(
        message="Coupon applied successfully",
        data=CouponApplyResponse(
            code=coupon.code,
            applies_to=coupon.applies_to,
            discount_percentage=coupon.discount_percentage,
            original_amount=result.original_amount,
            discount_amount=result.discount_amount,
            final_amount=result.final_amount,
        ),
    )

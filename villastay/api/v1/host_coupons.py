"""Host coupon API router — hosts issue coupons for their own properties."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.api.deps import get_current_host, get_db
from villastay.models.coupon import HostCoupon
from villastay.models.host import Host
from villastay.schemas.common import ApiResponse
from villastay.schemas.coupon import HostCouponCreate, HostCouponResponse
from villastay.services import coupons as coupon_service
from villastay.services.pricing import is_coupon_currently_valid

router = APIRouter(prefix="/api/v1/host-coupons", tags=["host-coupons"])


def _host_coupon_out(coupon: HostCoupon) -> HostCouponResponse:
    out = HostCouponResponse.model_validate(coupon)
    out.is_currently_valid = is_coupon_currently_valid(coupon)
    return out


@router.post(
    "",
    response_model=ApiResponse[HostCouponResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a coupon for one of the current host's properties",
)
async def create_host_coupon(
    body: HostCouponCreate,
    db: AsyncSession = Depends(get_db),
    host: Host = Depends(get_current_host),
) -> ApiResponse[HostCouponResponse]:
    coupon = await coupon_service.create_host_coupon(db, host, **body.model_dump())
    return ApiResponse(message="Coupon created successfully", data=_host_coupon_out(coupon))


@router.get(
    "",
    response_model=ApiResponse[list[HostCouponResponse]],
    summary="List the current host's coupons",
)
async def list_host_coupons(
    db: AsyncSession = Depends(get_db),
    host: Host = Depends(get_current_host),
) -> ApiResponse[list[HostCouponResponse]]:
    coupons = await coupon_service.list_host_coupons(db, host)
    return ApiResponse(message="Coupons fetched successfully", data=[_host_coupon_out(c) for c in coupons])

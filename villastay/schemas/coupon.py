"""Pydantic v2 request/response schemas for coupon endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CouponCreate(BaseModel):
    """Schema for creating a platform-wide coupon (admin)."""

    code: str = Field(..., min_length=1, max_length=50)
    discount_percentage: Decimal = Field(..., ge=0, le=100, allow_inf_nan=False)
    valid_from: datetime
    valid_until: datetime
    min_purchase: Decimal = Field(Decimal("0"), ge=0, allow_inf_nan=False)
    max_discount: Decimal = Field(Decimal("0"), ge=0, allow_inf_nan=False)
    description: str = ""
    terms: str | list[str] = ""
    max_usage: int | None = Field(None, ge=1)
    is_active: bool = True

    @model_validator(mode="after")
    def check_validity_window(self) -> "CouponCreate":
        if self.valid_until <= self.valid_from:
            raise ValueError("valid_until must be after valid_from")
        return self


class CouponStatusUpdate(BaseModel):
    is_active: bool


class HostCouponCreate(BaseModel):
    """Schema for a host creating a coupon for one of their properties."""

    code: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1)
    discount_percentage: Decimal = Field(..., gt=0, le=100, allow_inf_nan=False)
    property_id: uuid.UUID
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True

    @model_validator(mode="after")
    def check_validity_window(self) -> "HostCouponCreate":
        if self.valid_until <= self.valid_from:
            raise ValueError("valid_until must be after valid_from")
        return self


class CouponApplyRequest(BaseModel):
    """Preview what a coupon does to an amount."""

    coupon_code: str = Field(..., min_length=1, max_length=50)
    total_amount: Decimal = Field(..., gt=0, allow_inf_nan=False)
    property_id: uuid.UUID | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CouponResponse(BaseModel):
    id: uuid.UUID
    code: str
    discount_percentage: Decimal
    max_discount: Decimal
    min_purchase: Decimal
    valid_from: datetime
    valid_until: datetime
    description: str
    terms_and_conditions: str
    is_active: bool
    usage_count: int
    max_usage: int | None = None
    is_currently_valid: bool = False

    model_config = ConfigDict(from_attributes=True)


class HostCouponResponse(BaseModel):
    id: uuid.UUID
    code: str
    discount_percentage: Decimal
    property_id: uuid.UUID
    host_id: uuid.UUID
    valid_from: datetime
    valid_until: datetime
    description: str
    is_active: bool
    is_currently_valid: bool = False

    model_config = ConfigDict(from_attributes=True)


class CouponApplyResponse(BaseModel):
    code: str
    applies_to: str  # platform, property
    discount_percentage: Decimal
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal

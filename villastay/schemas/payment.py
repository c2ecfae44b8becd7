"""Pydantic v2 schemas for the payment order / verification flow."""

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from villastay.schemas.booking import BookingDetails, BookingResponse


class QuoteRequest(BaseModel):
    """Ask the server to price a stay, optionally with a coupon."""

    property_id: uuid.UUID
    check_in: date
    check_out: date
    coupon_code: str | None = Field(None, max_length=50)

    @model_validator(mode="after")
    def check_dates(self) -> "QuoteRequest":
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self


class QuoteResponse(BaseModel):
    nights: int
    base_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    coupon_code: str | None = None
    currency: str


class OrderCreate(BaseModel):
    """Open a gateway order for an amount the client is about to pay."""

    amount: Decimal = Field(..., gt=0, allow_inf_nan=False)
    property_id: uuid.UUID
    user_id: uuid.UUID | None = None
    booking_details: BookingDetails
    user_name: str | None = Field(None, max_length=255)
    property_title: str | None = Field(None, max_length=255)


class OrderResponse(BaseModel):
    """Gateway order. ``amount`` is in minor currency units."""

    id: str
    amount: int
    currency: str


class PaymentVerify(BaseModel):
    """Client-submitted proof of payment for an order."""

    order_id: str = Field(..., min_length=1, max_length=100)
    payment_id: str = Field(..., min_length=1, max_length=100)
    signature: str = Field(..., min_length=1, max_length=255)
    property_id: uuid.UUID
    user_id: uuid.UUID | None = None
    booking_details: BookingDetails

    @model_validator(mode="after")
    def require_total_price(self) -> "PaymentVerify":
        if self.booking_details.total_price is None:
            raise ValueError("booking_details.total_price is required")
        return self


class VerifyResponse(BaseModel):
    booking_id: uuid.UUID
    payment_id: str
    booking: BookingResponse

"""Pydantic v2 request/response schemas for booking endpoints."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from villastay.models.booking import Booking
from villastay.models.refund import Refund

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CouponApplied(BaseModel):
    """Coupon the client applied while building the quote."""

    code: str = Field(..., min_length=1, max_length=50)
    discount: Decimal = Field(Decimal("0"), ge=0, allow_inf_nan=False)


class BookingDetails(BaseModel):
    """Stay details submitted with order creation and payment verification."""

    check_in_date: date
    check_out_date: date
    guests: int = Field(1, ge=1)
    nights: int | None = Field(None, ge=1)
    total_price: Decimal | None = Field(None, ge=0, allow_inf_nan=False)
    coupon_applied: CouponApplied | None = None

    @model_validator(mode="after")
    def check_dates(self) -> "BookingDetails":
        """Validate that check-out is strictly after check-in and nights agree."""
        if self.check_out_date <= self.check_in_date:
            raise ValueError("check_out_date must be after check_in_date")
        expected = (self.check_out_date - self.check_in_date).days
        if self.nights is None:
            self.nights = expected
        elif self.nights != expected:
            raise ValueError(f"nights must be {expected} for the selected dates")
        return self


class CancelBookingRequest(BaseModel):
    """Schema for cancelling one of the current user's bookings."""

    booking_id: uuid.UUID
    refund_amount: Decimal = Field(..., ge=0, allow_inf_nan=False)
    cancellation_fee: Decimal = Field(..., ge=0, allow_inf_nan=False)
    reason: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PaymentDetailsResponse(BaseModel):
    order_id: str | None = None
    payment_id: str | None = None
    payment_method: str | None = None
    payment_date: datetime | None = None


class CouponDetailsResponse(BaseModel):
    code: str
    discount: Decimal
    original_price: Decimal


class BookingResponse(BaseModel):
    """Booking as returned from reservation and cancellation endpoints."""

    id: uuid.UUID
    property_id: uuid.UUID | None = None
    user_id: uuid.UUID
    host_id: uuid.UUID | None = None
    check_in: date
    check_out: date
    number_of_guests: int
    nights: int
    total_price: Decimal
    status: str
    payment_status: str
    payment_details: PaymentDetailsResponse
    coupon_details: CouponDetailsResponse | None = None
    created_at: datetime | None = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        coupon = None
        if booking.coupon_code:
            coupon = CouponDetailsResponse(
                code=booking.coupon_code,
                discount=booking.coupon_discount or Decimal("0"),
                original_price=booking.coupon_original_price or booking.total_price,
            )
        return cls(
            id=booking.id,
            property_id=booking.property_id,
            user_id=booking.user_id,
            host_id=booking.host_id,
            check_in=booking.check_in,
            check_out=booking.check_out,
            number_of_guests=booking.number_of_guests,
            nights=booking.nights,
            total_price=booking.total_price,
            status=booking.status,
            payment_status=booking.payment_status,
            payment_details=PaymentDetailsResponse(
                order_id=booking.payment_order_id,
                payment_id=booking.payment_id,
                payment_method=booking.payment_method,
                payment_date=booking.payment_date,
            ),
            coupon_details=coupon,
            created_at=booking.created_at,
        )


class BookingDateRange(BaseModel):
    check_in: date
    check_out: date


class BookedPropertySummary(BaseModel):
    id: uuid.UUID
    title: str
    address: str


class UserBookingItem(BaseModel):
    """One entry in the current user's booking history."""

    id: uuid.UUID
    booking_date: BookingDateRange
    property_details: BookedPropertySummary | None = None
    status: str
    payment_status: str
    amount_paid: Decimal

    @classmethod
    def from_booking(cls, booking: Booking) -> "UserBookingItem":
        prop = booking.property
        return cls(
            id=booking.id,
            booking_date=BookingDateRange(check_in=booking.check_in, check_out=booking.check_out),
            property_details=(
                BookedPropertySummary(id=prop.id, title=prop.title, address=prop.address) if prop else None
            ),
            status=booking.status,
            payment_status=booking.payment_status,
            amount_paid=booking.total_price,
        )


class RefundResponse(BaseModel):
    id: uuid.UUID
    refund_id: str
    payment_id: str
    amount: Decimal
    currency: str
    status: str
    reference_id: str | None = None
    gateway_created_at: datetime | None = None
    processed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_refund(cls, refund: Refund) -> "RefundResponse":
        return cls.model_validate(refund)


class CancellationResponse(BaseModel):
    """Outcome of a cancellation."""

    booking_id: uuid.UUID
    status: str
    payment_status: str
    refund_details: RefundResponse | None = None


class BookingPage(BaseModel):
    """Paginated booking listing for admins."""

    items: list[BookingResponse]
    total: int
    skip: int
    limit: int

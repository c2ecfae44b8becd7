"""Payment API router — quote a stay, open a gateway order, verify a payment.

A successful verification is the only way a booking gets created.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.api.deps import get_current_user, get_db, get_notifier, get_payment_gateway
from villastay.config import settings
from villastay.models.user import User
from villastay.payments.gateway import PaymentGateway
from villastay.schemas.booking import BookingResponse
from villastay.schemas.common import ApiResponse
from villastay.schemas.payment import (
    OrderCreate,
    OrderResponse,
    PaymentVerify,
    QuoteRequest,
    QuoteResponse,
    VerifyResponse,
)
from villastay.services import orders
from villastay.services.notifications import BookingNotifier
from villastay.services.reservations import verify_and_reserve

router = APIRouter(prefix="/api/v1/payment", tags=["payments"])


def _ensure_same_user(current_user: User, claimed_user_id) -> None:
    if claimed_user_id is not None and claimed_user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot book on behalf of another user",
        )


@router.post("/quote", response_model=ApiResponse[QuoteResponse])
async def quote_stay(
    body: QuoteRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[QuoteResponse]:
    """Price a stay with weekday/weekend rates and an optional coupon."""
    quote = await orders.quote(db, body.property_id, body.check_in, body.check_out, body.coupon_code)
    return ApiResponse(
        message="Quote calculated",
        data=QuoteResponse(
            nights=quote.nights,
            base_amount=quote.base_amount,
            discount_amount=quote.discount_amount,
            final_amount=quote.final_amount,
            coupon_code=quote.coupon_code,
            currency=settings.payment_currency,
        ),
    )


@router.post("/order", response_model=ApiResponse[OrderResponse], status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ApiResponse[OrderResponse]:
    """Open a gateway order the client will pay against."""
    _ensure_same_user(current_user, body.user_id)
    order = await orders.create_order(
        db,
        gateway,
        amount=body.amount,
        property_id=body.property_id,
        booking_details=body.booking_details,
        user_name=body.user_name or current_user.full_name,
        property_title=body.property_title,
    )
    return ApiResponse(
        message="Order created",
        data=OrderResponse(id=order.id, amount=order.amount, currency=order.currency),
    )


@router.post("/verify", response_model=ApiResponse[VerifyResponse])
async def verify_payment(
    body: PaymentVerify,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: BookingNotifier = Depends(get_notifier),
) -> ApiResponse[VerifyResponse]:
    """Verify the checkout signature and confirm the booking.

    The confirmation email is sent after the response, from a background task.
    """
    _ensure_same_user(current_user, body.user_id)
    booking = await verify_and_reserve(
        db,
        gateway,
        order_id=body.order_id,
        payment_id=body.payment_id,
        signature=body.signature,
        property_id=body.property_id,
        user_id=current_user.id,
        booking_details=body.booking_details,
    )
    background_tasks.add_task(notifier.send_booking_confirmation, booking.id)
    return ApiResponse(
        message="Payment verified and booking confirmed",
        data=VerifyResponse(
            booking_id=booking.id,
            payment_id=booking.payment_id,
            booking=BookingResponse.from_booking(booking),
        ),
    )

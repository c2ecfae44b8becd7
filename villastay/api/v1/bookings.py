"""Bookings API router — history, cancellation and invoices.

Ownership rule: a user only ever sees and cancels their **own** bookings.
Hosts see bookings on the properties they own; admins see everything.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.api.deps import (
    get_current_host,
    get_current_user,
    get_db,
    get_notifier,
    get_payment_gateway,
    require_admin,
)
from villastay.errors import StateError
from villastay.models.host import Host
from villastay.models.user import User
from villastay.payments.gateway import PaymentGateway
from villastay.schemas.booking import (
    BookingPage,
    BookingResponse,
    CancelBookingRequest,
    CancellationResponse,
    RefundResponse,
    UserBookingItem,
)
from villastay.schemas.common import ApiResponse
from villastay.services import bookings as booking_service
from villastay.services.cancellations import cancel_booking
from villastay.services.invoices import invoice_number, render_invoice_pdf_bytes
from villastay.services.notifications import BookingNotifier, RefundNotice

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=ApiResponse[list[UserBookingItem]],
    summary="List the current user's bookings",
)
async def list_my_bookings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[list[UserBookingItem]]:
    bookings = await booking_service.list_user_bookings(db, current_user.id)
    return ApiResponse(
        message="Bookings fetched successfully",
        data=[UserBookingItem.from_booking(b) for b in bookings],
    )


@router.get(
    "/all",
    response_model=ApiResponse[BookingPage],
    summary="List every booking on the platform (admin)",
)
async def list_all_bookings(
    status_filter: str | None = Query(None, alias="status", description="Filter by booking status"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ApiResponse[BookingPage]:
    items, total = await booking_service.list_all_bookings(db, status=status_filter, skip=skip, limit=limit)
    return ApiResponse(
        message="Bookings fetched successfully",
        data=BookingPage(
            items=[BookingResponse.from_booking(b) for b in items],
            total=total,
            skip=skip,
            limit=limit,
        ),
    )


@router.get(
    "/host-property",
    response_model=ApiResponse[list[BookingResponse]],
    summary="List bookings on the current host's properties",
)
async def list_host_property_bookings(
    db: AsyncSession = Depends(get_db),
    host: Host = Depends(get_current_host),
) -> ApiResponse[list[BookingResponse]]:
    bookings = await booking_service.list_host_property_bookings(db, host.id)
    return ApiResponse(
        message="Bookings fetched successfully",
        data=[BookingResponse.from_booking(b) for b in bookings],
    )


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


@router.post(
    "/cancel",
    response_model=ApiResponse[CancellationResponse],
    summary="Cancel a booking and refund the given amount",
)
async def cancel(
    body: CancelBookingRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: BookingNotifier = Depends(get_notifier),
) -> ApiResponse[CancellationResponse]:
    """Cancel one of the current user's confirmed bookings.

    The refund (if any) goes through the gateway before anything is written;
    if it fails the booking stays confirmed and its dates stay reserved.
    """
    result = await cancel_booking(
        db,
        gateway,
        booking_id=body.booking_id,
        user_id=current_user.id,
        refund_amount=body.refund_amount,
        cancellation_fee=body.cancellation_fee,
        reason=body.reason,
    )
    refund_details = RefundResponse.from_refund(result.refund) if result.refund else None
    notice = (
        RefundNotice(
            amount=refund_details.amount,
            status=refund_details.status,
            reference_id=refund_details.reference_id,
        )
        if refund_details
        else None
    )
    background_tasks.add_task(notifier.send_booking_cancellation, result.booking.id, notice)

    message = (
        "Booking cancelled and refund initiated successfully"
        if refund_details
        else "Booking cancelled successfully. No refund is applicable"
    )
    return ApiResponse(
        message=message,
        data=CancellationResponse(
            booking_id=result.booking.id,
            status=result.booking.status,
            payment_status=result.booking.payment_status,
            refund_details=refund_details,
        ),
    )


# ---------------------------------------------------------------------------
# Invoice
# ---------------------------------------------------------------------------


@router.get(
    "/{booking_id}/invoice",
    summary="Download the invoice PDF for one of the current user's bookings",
    response_class=Response,
)
async def download_invoice(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    booking = await booking_service.get_user_booking(db, booking_id, current_user.id)
    if not booking.payment_id:
        raise StateError("Invoice is only available for paid bookings")

    number = invoice_number(booking, await booking_service.booking_position(db, booking))
    pdf = render_invoice_pdf_bytes(booking, number)
    filename = f"invoice-{number.replace('/', '-')}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

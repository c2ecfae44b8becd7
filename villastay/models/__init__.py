"""SQLAlchemy models for VillaStay.

All models are imported here so that ``Base.metadata`` knows every table
(schema creation and migrations discover them this way). If you add a new
model, import it in this file.
"""

from villastay.models.booking import Booking
from villastay.models.coupon import Coupon, HostCoupon
from villastay.models.host import Host
from villastay.models.property import BookedDate, Property
from villastay.models.refund import Refund
from villastay.models.user import User

__all__ = [
    "BookedDate",
    "Booking",
    "Coupon",
    "Host",
    "HostCoupon",
    "Property",
    "Refund",
    "User",
]

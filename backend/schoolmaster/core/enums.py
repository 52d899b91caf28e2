"""
Core enums for the SchoolMaster platform.

Lifecycle status enums live next to their models; this module holds the
cross-cutting ones.
"""

from enum import Enum


class RoleName(str, Enum):
    """Roles a user account can hold."""

    ADMIN = "admin"
    TUTOR = "tutor"
    STUDENT = "student"


class PaymentMethod(str, Enum):
    """How a student pays for a lesson invitation."""

    CARD = "card"
    BALANCE = "balance"


class PaymentStatus(str, Enum):
    """Payment state recorded on invitations and lessons."""

    AUTHORIZED = "authorized"
    HELD = "held"
    PAID = "paid"
    RELEASED = "released"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class ActorSide(str, Enum):
    """Which party initiated a lesson change."""

    STUDENT = "student"
    TUTOR = "tutor"
    ADMIN = "admin"

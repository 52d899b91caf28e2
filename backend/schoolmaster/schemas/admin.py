"""Responses for the manually triggered background sweeps."""

from ._strict_base import StrictModel


class ExpiredInvitationsResponse(StrictModel):
    message: str
    processed: int
    expired: int
    skipped: int
    failed: int


class UnreadNotificationsResponse(StrictModel):
    message: str
    candidates: int
    sent: int
    failed: int
    skipped: int

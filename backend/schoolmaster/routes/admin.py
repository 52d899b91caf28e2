# backend/schoolmaster/routes/admin.py
"""
Manual triggers for the scheduled sweeps.

Both sweeps are claim-based, so running them here while Celery beat also
runs them is harmless.
"""

import logging

from fastapi import APIRouter, Depends

from ..api.dependencies import get_invitation_service, get_notification_service, require_admin
from ..models.user import User
from ..schemas.admin import ExpiredInvitationsResponse, UnreadNotificationsResponse
from ..services.invitation_service import InvitationService
from ..services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/process-expired-invitations", response_model=ExpiredInvitationsResponse)
def process_expired_invitations(
    current_user: User = Depends(require_admin),
    invitation_service: InvitationService = Depends(get_invitation_service),
) -> ExpiredInvitationsResponse:
    stats = invitation_service.expire_stale_invitations()
    logger.info(f"Admin {current_user.id} ran invitation expiry: {stats}")
    return ExpiredInvitationsResponse(message="Przetworzono wygasłe zaproszenia", **stats)


@router.post("/send-unread-notifications", response_model=UnreadNotificationsResponse)
def send_unread_notifications(
    current_user: User = Depends(require_admin),
    notification_service: NotificationService = Depends(get_notification_service),
) -> UnreadNotificationsResponse:
    stats = notification_service.send_unread_digests()
    logger.info(f"Admin {current_user.id} ran unread digest: {stats}")
    return UnreadNotificationsResponse(
        message="Wysłano powiadomienia o nieprzeczytanych wiadomościach", **stats
    )

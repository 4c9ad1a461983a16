"""
Approval notifications.
Called by the HTTP layer only when a transporter's overall status changes
to approved or rejected. Message delivery (email/SMS) lives elsewhere.
"""

import logging
from abc import ABC, abstractmethod

from ..models.enums import ApprovalStatus
from ..models.schemas import ApprovalAggregate, TransporterRecord
from ..utils.helpers import mask_sensitive_data

logger = logging.getLogger(__name__)


class NotificationDispatcher(ABC):
    @abstractmethod
    async def notify_status_change(
        self, record: TransporterRecord | None, aggregate: ApprovalAggregate
    ) -> None:
        ...


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Records approval/rejection notifications in the application log."""

    async def notify_status_change(
        self, record: TransporterRecord | None, aggregate: ApprovalAggregate
    ) -> None:
        phone = mask_sensitive_data(record.phone_number if record else None)
        if aggregate.status == ApprovalStatus.APPROVED:
            logger.info(f"Notify {aggregate.entity_id} ({phone}): documents approved")
        elif aggregate.status == ApprovalStatus.REJECTED:
            logger.info(
                f"Notify {aggregate.entity_id} ({phone}): rejected — "
                f"{aggregate.rejection_reason or 'Unqualified'}"
            )

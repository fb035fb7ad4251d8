"""Notification service: the inbound facade used by the rest of the platform.

Every send returns as soon as the dispatcher has accepted the request.
Pass ``wait=True`` to block for the outcome of the first attempt.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable
from uuid import UUID

from notification_service.channels import templates
from notification_service.channels.base import ChannelAdapter
from notification_service.errors import ValidationError
from notification_service.models.delivery import (
    DeliveryRecordListResponse,
    DeliveryRecordResponse,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)
from notification_service.models.notifications import (
    ApplicationConfirmationRequest,
    ApplicationStatusUpdateRequest,
    ContactFields,
    DeadlineReminderRequest,
    EmailRequest,
    PushRequest,
    SmsRequest,
    UssdConfirmationRequest,
    WelcomeNotificationRequest,
)
from notification_service.models.request import NotificationRequest, NotificationTemplate
from notification_service.services.delivery_log import DeliveryLogStore
from notification_service.services.dispatcher import DeliverySummary, Dispatcher
from notification_service.services.recipients import mask_recipient

logger = logging.getLogger(__name__)

DEFAULT_STATS_WINDOW = timedelta(days=30)


class NotificationService:
    """Builds NotificationRequests from API payloads and dispatches them."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        store: DeliveryLogStore,
        base_url: str,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.dispatcher = dispatcher
        self.store = store
        self.base_url = base_url
        self._clock = clock

    # ------------------------------------------------------------------
    # Single-channel sends
    # ------------------------------------------------------------------

    def send_sms(self, request: SmsRequest, wait: bool = False) -> DeliverySummary:
        return self._send(
            NotificationRequest(
                user_id=request.user_id,
                channel=NotificationChannel.SMS,
                recipient=request.phone_number,
                content=request.message,
                category=request.category,
                priority=request.priority,
            ),
            wait,
        )

    def send_email(self, request: EmailRequest, wait: bool = False) -> DeliverySummary:
        return self._send(
            NotificationRequest(
                user_id=request.user_id,
                channel=NotificationChannel.EMAIL,
                recipient=request.to_email,
                subject=request.subject,
                content=request.text_content,
                html_content=request.html_content,
                category=request.category,
                priority=request.priority,
            ),
            wait,
        )

    def send_push(self, request: PushRequest, wait: bool = False) -> DeliverySummary:
        return self._send(
            NotificationRequest(
                user_id=request.user_id,
                channel=NotificationChannel.PUSH,
                recipient=request.device_token,
                subject=request.title,
                content=request.body,
                category=request.category,
                priority=request.priority,
            ),
            wait,
        )

    def send_ussd_confirmation(
        self, request: UssdConfirmationRequest, wait: bool = False
    ) -> DeliverySummary:
        """SMS confirming a registration completed over USSD."""
        language = self._language(request.user_id, request.language)
        message = templates.render_ussd_confirmation(
            request.user_name, request.confirmation_code, language, self.base_url
        )
        return self._send(
            NotificationRequest(
                user_id=request.user_id,
                channel=NotificationChannel.SMS,
                recipient=request.phone_number,
                content=message,
                category=NotificationCategory.TRANSACTIONAL,
                priority=NotificationPriority.HIGH,
                template=NotificationTemplate.USSD_CONFIRMATION,
                language=language,
            ),
            wait,
        )

    # ------------------------------------------------------------------
    # Template sends (SMS and/or email)
    # ------------------------------------------------------------------

    def send_welcome_notification(
        self, request: WelcomeNotificationRequest, wait: bool = False
    ) -> dict[str, Any]:
        language = self._language(request.user_id, request.language)
        rendered = templates.render_welcome(
            request.first_name, request.role, language, self.base_url
        )
        return self._send_rendered(
            request,
            rendered,
            NotificationTemplate.WELCOME,
            NotificationCategory.TRANSACTIONAL,
            wait,
        )

    def send_application_confirmation(
        self, request: ApplicationConfirmationRequest, wait: bool = False
    ) -> dict[str, Any]:
        language = self._language(request.user_id, request.language)
        rendered = templates.render_application_confirmation(
            request.first_name,
            request.job_title,
            request.company_name,
            language,
            self.base_url,
        )
        return self._send_rendered(
            request,
            rendered,
            NotificationTemplate.APPLICATION_CONFIRMATION,
            NotificationCategory.TRANSACTIONAL,
            wait,
        )

    def send_application_status_update(
        self, request: ApplicationStatusUpdateRequest, wait: bool = False
    ) -> dict[str, Any]:
        language = self._language(request.user_id, request.language)
        rendered = templates.render_application_status_update(
            request.first_name,
            request.job_title,
            request.status,
            request.review_notes,
            language,
            self.base_url,
        )
        return self._send_rendered(
            request,
            rendered,
            NotificationTemplate.APPLICATION_STATUS_UPDATE,
            NotificationCategory.UPDATE,
            wait,
        )

    def send_deadline_reminder(
        self, request: DeadlineReminderRequest, wait: bool = False
    ) -> dict[str, Any]:
        language = self._language(request.user_id, request.language)
        rendered = templates.render_deadline_reminder(
            request.first_name, request.title, request.deadline, language, self.base_url
        )
        return self._send_rendered(
            request,
            rendered,
            NotificationTemplate.DEADLINE_REMINDER,
            NotificationCategory.REMINDER,
            wait,
        )

    def _send_rendered(
        self,
        request: ContactFields,
        rendered: templates.RenderedMessage,
        template: NotificationTemplate,
        category: NotificationCategory,
        wait: bool,
    ) -> dict[str, Any]:
        """Send a rendered template on every channel the user gave a contact for.

        Both recipients are validated before anything is dispatched, so a
        bad email address does not leave a lone SMS behind.
        """
        if not request.phone_number and not request.email:
            raise ValidationError("A phone number or email address is required")

        notifications: dict[str, NotificationRequest] = {}
        if request.phone_number:
            notifications["sms"] = NotificationRequest(
                user_id=request.user_id,
                channel=NotificationChannel.SMS,
                recipient=request.phone_number,
                content=rendered.sms,
                category=category,
                template=template,
                language=rendered.language,
            )
        if request.email:
            notifications["email"] = NotificationRequest(
                user_id=request.user_id,
                channel=NotificationChannel.EMAIL,
                recipient=request.email,
                subject=rendered.subject,
                content=rendered.text,
                html_content=rendered.html,
                category=category,
                template=template,
                language=rendered.language,
            )

        for notification in notifications.values():
            self.dispatcher.validate(notification)

        result: dict[str, Any] = {"user_id": request.user_id, "sms": None, "email": None}
        for key, notification in notifications.items():
            result[key] = self._send(notification, wait)

        logger.info(
            f"Template {template.value} dispatched",
            extra={
                "user_id": str(request.user_id),
                "channels": list(notifications),
                "language": rendered.language,
            },
        )
        return result

    def _send(self, notification: NotificationRequest, wait: bool) -> DeliverySummary:
        handle = self.dispatcher.dispatch(notification)
        return handle.result() if wait else handle.accepted()

    def _language(self, user_id: UUID, requested: str | None) -> str:
        if requested:
            return requested
        return self.dispatcher.preferences.get(user_id).preferred_language

    # ------------------------------------------------------------------
    # History, statistics and health
    # ------------------------------------------------------------------

    def get_user_notifications(
        self, user_id: UUID, limit: int = 50, offset: int = 0
    ) -> DeliveryRecordListResponse:
        """Newest-first delivery history with masked recipients."""
        records, total = self.store.list_for_user(user_id, limit=limit, offset=offset)
        return DeliveryRecordListResponse(
            notifications=[
                DeliveryRecordResponse.model_validate(record).model_copy(
                    update={"recipient": mask_recipient(record.channel, record.recipient)}
                )
                for record in records
            ],
            total=total,
        )

    def get_notification_stats(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> dict[str, Any]:
        """Delivery counts for ``[start, end]``, defaulting to the last 30 days."""
        end = end or self._clock()
        start = start or end - DEFAULT_STATS_WINDOW
        if start > end:
            raise ValidationError("Start date must be before end date", field="start")
        return self.store.stats(start, end)

    def check_sms_health(self) -> dict[str, Any]:
        return self._check_health(NotificationChannel.SMS)

    def check_email_health(self) -> dict[str, Any]:
        return self._check_health(NotificationChannel.EMAIL)

    def _check_health(self, channel: NotificationChannel) -> dict[str, Any]:
        adapter: ChannelAdapter | None = self.dispatcher.adapters.get(channel)
        check = getattr(adapter, "check_health", None)
        if check is None:
            return {
                "healthy": False,
                "status": "DISABLED",
                "provider": adapter.provider_name if adapter else None,
                "error": getattr(adapter, "reason", "no adapter registered"),
            }
        return check()

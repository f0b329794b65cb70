from __future__ import annotations

import asyncio
import logging
from collections import deque

from hireflow.config import Settings
from hireflow.errors import NotificationSendFailure
from hireflow.notify.channels import EmailChannel, EmailSender, MessageSender, MessagingChannel
from hireflow.notify.messages import Message
from hireflow.types import ApplicantProfile, NotificationRequest

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fire-and-forget delivery; a failed send never reaches the caller."""

    def __init__(
        self,
        settings: Settings,
        *,
        email: EmailSender | None = None,
        messaging: MessageSender | None = None,
    ):
        self.settings = settings
        self.email = email or EmailChannel(settings)
        self.messaging = messaging or MessagingChannel(settings)
        self.history: deque[NotificationRequest] = deque(maxlen=settings.notification_history_size)
        self._tasks: set[asyncio.Task[None]] = set()

    def requests_for(self, profile: ApplicantProfile, message: Message) -> list[NotificationRequest]:
        requests: list[NotificationRequest] = []
        if profile.notify_by_email and profile.email:
            requests.append(
                NotificationRequest(
                    channel="email",
                    recipient=profile.email,
                    purpose=message.purpose,
                    subject=message.subject,
                    body=message.text,
                )
            )
        if profile.enable_messaging_notifications and profile.messaging_number:
            requests.append(
                NotificationRequest(
                    channel="messaging",
                    recipient=profile.messaging_number,
                    purpose=message.purpose,
                    subject=message.subject,
                    body=f"{message.subject}\n{message.text}",
                )
            )
        return requests

    def dispatch(self, profile: ApplicantProfile, message: Message) -> list[NotificationRequest]:
        requests = self.requests_for(profile, message)
        for request in requests:
            self.history.append(request)
            task = asyncio.create_task(self._deliver(request, message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return requests

    async def _deliver(self, request: NotificationRequest, message: Message) -> None:
        channel = self.email if request.channel == "email" else self.messaging
        if not channel.configured:
            request.outcome = "skipped"
            logger.info("%s channel not configured; skipped %s", request.channel, request.purpose)
            return

        try:
            if request.channel == "email":
                await asyncio.to_thread(
                    self.email.send,
                    request.recipient,
                    request.subject,
                    message.html,
                    message.text,
                )
            else:
                await asyncio.to_thread(self.messaging.send, request.recipient, request.body)
        except NotificationSendFailure as exc:
            request.outcome = "failed"
            request.error = exc.reason
            logger.warning("Notification failed: %s", exc)
            return
        except Exception as exc:
            request.outcome = "failed"
            request.error = str(exc)
            logger.exception("Unexpected notification error channel=%s", request.channel)
            return

        request.outcome = "sent"

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

"""Contact submission intake pipeline.

One linear pass per submission: honeypot check, normalization, validation,
optional persistence, best-effort notification. Storage and mail are
optional collaborators injected through ``PipelineConfig``; when either is
absent the pipeline runs in degraded mode instead of failing.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from opsscale.api.mailer import Notifier, compose_notification
from opsscale.api.models import ContactFields, IntakeResult, Submission, is_honeypot_hit
from opsscale.api.storage import SubmissionStore
from opsscale.exceptions import InvalidSubmissionError, NotificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineConfig:
    """Collaborators and addresses for the intake pipeline.

    Attributes:
        storage: Storage backend, or None when storage is disabled
        mail: Notification transport, or None when mail is disabled
        from_address: Sender of notification mail
        to_address: Recipient of notification mail
        site_name: Product name used in notifications
    """

    storage: SubmissionStore | None = None
    mail: Notifier | None = None
    from_address: str = "Ops Scale <noreply@opsscale.tech>"
    to_address: str = "you@example.com"
    site_name: str = "Ops Scale"


class IntakePipeline:
    """Validates, stores and announces contact submissions."""

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    @property
    def storage_available(self) -> bool:
        storage = self.config.storage
        return storage is not None and storage.available

    @property
    def mail_available(self) -> bool:
        mail = self.config.mail
        return mail is not None and mail.available

    async def submit(
        self, payload: Mapping[str, Any], client_address: str | None = None
    ) -> IntakeResult:
        """Run one submission through the pipeline.

        Args:
            payload: Raw request payload
            client_address: Originating client address, if known

        Returns:
            IntakeResult describing acceptance, storage and notification

        Raises:
            StorageWriteError: If storage is available but the write fails;
                no notification is attempted in that case
        """
        if is_honeypot_hit(payload):
            logger.info("Honeypot field filled; submission discarded")
            return IntakeResult.trapped()

        fields = ContactFields.from_payload(payload)
        try:
            fields.validate_fields()
        except InvalidSubmissionError as e:
            logger.info("Contact submission rejected: %s", e)
            return IntakeResult.rejected()

        submission = Submission.from_fields(fields, originating_address=client_address)

        # Capabilities are checked once so a run sees a consistent view
        storage_available = self.storage_available
        mail_available = self.mail_available

        stored = False
        if storage_available:
            submission = submission.with_id(await self.config.storage.create(submission))
            stored = True

        mailed = False
        if mail_available:
            mailed = await self._notify(submission)

        logger.info(
            "Contact form submitted",
            extra={
                "submission_id": submission.id,
                "stored": stored,
                "mailed": mailed,
                "ip_address": client_address,
            },
        )
        return IntakeResult(accepted=True, stored=stored, mailed=mailed, id=submission.id)

    async def _notify(self, submission: Submission) -> bool:
        message = compose_notification(
            submission,
            sender=self.config.from_address,
            recipient=self.config.to_address,
            site_name=self.config.site_name,
        )
        try:
            await self.config.mail.send(message)
        except NotificationError as e:
            logger.warning(
                "Notification email failed",
                extra={"submission_id": submission.id, "error": str(e)},
            )
            return False
        except Exception:
            # Mail never fails the submission, whatever the transport raises
            logger.error(
                "Unexpected error sending notification email",
                extra={"submission_id": submission.id},
                exc_info=True,
            )
            return False
        return True

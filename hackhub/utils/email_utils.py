import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional
from uuid import UUID

from hackhub.models.enums import NotificationType
from hackhub.settings import settings

logger = logging.getLogger(__name__)

SUBJECTS = {
    NotificationType.SUBMISSION_CREATED: "Your team submitted a project",
    NotificationType.SUBMISSION_STATUS: "Submission status changed",
    NotificationType.EVALUATION_RECEIVED: "Your submission was evaluated",
    NotificationType.TEAM_JOIN: "New member in your team",
    NotificationType.JUDGE_INVITATION: "You are invited to judge",
    NotificationType.NEW_COMMENT: "New comment on your submission",
    NotificationType.ANNOUNCEMENT: "New announcement",
}

# reference_type -> path of the referenced resource in the API
REFERENCE_PATHS = {
    "submission": "/submissions/{id}",
    "team": "/teams/{id}",
    "event": "/events/{id}",
    "announcement": "/announcements/{id}",
}


class EmailSender:
    """Sends notification emails over plain SMTP, one message per batch of recipients"""

    def __init__(self):
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_sender = settings.smtp_sender
        self.enabled = settings.smtp_enabled

    def reference_link(self, reference_type: Optional[str], reference_id: Optional[UUID]) -> Optional[str]:
        path = REFERENCE_PATHS.get(reference_type or "")
        if path is None or reference_id is None:
            return None
        return settings.base_url.rstrip("/") + path.format(id=reference_id)

    def _create_message(self, recipients: List[str], subject: str, body: str) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg['From'] = self.smtp_sender
        # recipients of a batch must not see each other
        msg['To'] = self.smtp_sender
        msg['Bcc'] = ', '.join(recipients)
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'plain'))
        return msg

    def send_notification(
        self,
        recipients: List[str],
        notification_type: NotificationType,
        message: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[UUID] = None
    ) -> bool:
        """
        Email an in-app notification to its recipients

        Returns:
            bool: True on success, False if sending is disabled or failed
        """
        if not self.enabled:
            logger.debug("SMTP disabled, skipping %s email", notification_type.value)
            return False
        if not recipients:
            return False

        body = message
        link = self.reference_link(reference_type, reference_id)
        if link:
            body = f"{message}\n\n{link}"

        msg = self._create_message(
            recipients,
            f"HackHub: {SUBJECTS.get(notification_type, 'Notification')}",
            body
        )
        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.send_message(msg)
        except (smtplib.SMTPException, OSError):
            logger.exception("Error sending %s email to %d recipients", notification_type.value, len(recipients))
            return False

        logger.info("Sent %s email to %d recipients", notification_type.value, len(recipients))
        return True


email_sender = EmailSender()

"""
Notification Service
Best-effort e-mail alerts to the IT inbox via SendGrid.
A failed or unconfigured send is logged and reported as False, never raised.
"""
import logging
from typing import Dict, List, Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from config import (
    SENDGRID_API_KEY, NOTIFICATION_EMAIL_FROM, IT_NOTIFICATION_EMAIL, ENABLE_NOTIFICATIONS
)

logger = logging.getLogger('notification_service')


class Notifier:
    """Sends new-ticket and overdue alerts to IT staff"""

    def __init__(
        self,
        api_key: Optional[str] = SENDGRID_API_KEY,
        from_email: str = NOTIFICATION_EMAIL_FROM,
        to_email: str = IT_NOTIFICATION_EMAIL,
        enabled: bool = ENABLE_NOTIFICATIONS,
        client=None
    ):
        self.from_email = from_email
        self.to_email = to_email
        self.client = None

        if not enabled:
            logger.info("NOTIFY_DISABLED | ENABLE_NOTIFICATIONS is off")
        elif client is not None:
            self.client = client
        elif api_key:
            self.client = SendGridAPIClient(api_key)
        else:
            logger.warning("NOTIFY_DISABLED | SENDGRID_API_KEY not set")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def send(self, subject: str, body: str) -> bool:
        """Send one alert; True only when SendGrid accepted it"""
        if self.client is None:
            logger.info(f"NOTIFY_SKIPPED | {subject}")
            return False

        html_body = body.replace('\n\n', '</p><p>').replace('\n', '<br>')
        message = Mail(
            from_email=self.from_email,
            to_emails=self.to_email,
            subject=subject,
            html_content=f'<p>{html_body}</p>'
        )

        try:
            response = self.client.send(message)
        except Exception as e:
            logger.warning(f"NOTIFY_FAIL | {subject} | {type(e).__name__}: {e}")
            return False

        logger.info(f"NOTIFY_SENT | {subject} | status={response.status_code}")
        return True

    def notify_new_ticket(self, ticket: Dict) -> bool:
        subject = f"New Support Ticket - {ticket['ticket_id']}"
        body = (
            f"{ticket.get('student_name')} submitted a {ticket.get('issue_category')} issue.\n\n"
            f"Device: {ticket.get('device_type')} ({ticket.get('device_ip_address')})\n"
            f"Description: {(ticket.get('issue_description') or '')[:200]}"
        )
        return self.send(subject, body)

    def notify_overdue(self, tickets: List[Dict]) -> bool:
        if not tickets:
            return False
        count = len(tickets)
        subject = f"{count} ticket(s) overdue - immediate action required"
        lines = [
            f"{t['ticket_id']} - {t.get('student_name')} - {t.get('status')}"
            for t in tickets
        ]
        return self.send(subject, "\n".join(lines))

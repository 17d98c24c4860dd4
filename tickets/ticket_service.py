"""
Ticket Service - Handles ticket submission, triage updates and report files
"""
import ipaddress
import logging
import os
import random
import string
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from config import OVERDUE_THRESHOLD_MINUTES, MAX_REPORT_SIZE_KB
from services.activity_service import ActivityType
from tickets.lifecycle import (
    utc_now, ensure_aware, ticket_is_overdue, filter_tickets, overdue_tickets,
    clean_update_fields, can_transition
)
from tickets.ticket_config import (
    TICKET_STATUS, STATUS_LABELS, ISSUE_CATEGORIES, ISSUE_TYPES, PRIORITY_LEVELS,
    DEPARTMENTS, STUDENT_YEARS, DEVICE_TYPES, ENGINEERS, REQUIRED_TICKET_FIELDS,
    MIN_DESCRIPTION_LENGTH, MAX_DESCRIPTION_LENGTH, ALLOWED_REPORT_TYPES,
    ALLOWED_REPORT_MIMETYPES, STUDENT_ID_PREFIX, STUDENT_EMAIL_DOMAIN
)

logger = logging.getLogger('ticket_service')


def generate_student_id() -> str:
    """STU- followed by 9 random uppercase letters/digits"""
    alphabet = string.ascii_uppercase + string.digits
    return f"{STUDENT_ID_PREFIX}-" + "".join(random.choices(alphabet, k=9))


def derive_student_email(student_name: str) -> str:
    """'Sara Ali Hassan' -> 'sara.hassan@school.edu'"""
    parts = [p for p in student_name.lower().split() if p]
    if not parts:
        return f"student@{STUDENT_EMAIL_DOMAIN}"
    local = parts[0] if len(parts) == 1 else f"{parts[0]}.{parts[-1]}"
    local = "".join(ch for ch in local if ch.isalnum() or ch == '.')
    return f"{local or 'student'}@{STUDENT_EMAIL_DOMAIN}"


def _iso(value) -> Optional[str]:
    if isinstance(value, datetime):
        return ensure_aware(value).isoformat()
    return value


def serialize_ticket(ticket: Dict, now: Optional[datetime] = None,
                     threshold_minutes: int = OVERDUE_THRESHOLD_MINUTES,
                     include_report_data: bool = False) -> Dict:
    """
    JSON-ready copy of a ticket with a freshly computed is_overdue flag.
    Report contents are left out unless asked for; only name and timestamp travel.
    """
    data = dict(ticket)
    data['is_overdue'] = ticket_is_overdue(ticket, now, threshold_minutes)
    data['created_at'] = _iso(ticket.get('created_at'))
    data['updated_at'] = _iso(ticket.get('updated_at'))

    report = ticket.get('report_file')
    if report:
        data['report_file'] = {
            'name': report.get('name'),
            'uploaded_at': _iso(report.get('uploaded_at'))
        }
        if include_report_data:
            data['report_file']['data'] = report.get('data')
    return data


class TicketService:
    """Handles ticket validation, creation, listing and IT-side updates"""

    def __init__(self, repository, notifier=None, activity=None,
                 threshold_minutes: int = OVERDUE_THRESHOLD_MINUTES):
        self.repository = repository
        self.notifier = notifier
        self.activity = activity
        self.threshold_minutes = threshold_minutes

    # ============================================
    # Options
    # ============================================

    @staticmethod
    def get_options() -> Dict:
        """Option lists for the student form and the IT board"""
        return {
            "statuses": [{"value": s, "label": STATUS_LABELS[s]} for s in TICKET_STATUS],
            "issue_categories": ISSUE_CATEGORIES,
            "issue_types": ISSUE_TYPES,
            "priority_levels": PRIORITY_LEVELS,
            "departments": [{"value": k, "label": v} for k, v in DEPARTMENTS.items()],
            "years": STUDENT_YEARS,
            "device_types": DEVICE_TYPES,
            "engineers": [{"value": k, "label": v} for k, v in ENGINEERS.items()]
        }

    # ============================================
    # Create
    # ============================================

    @staticmethod
    def validate_ticket_data(data: Dict) -> Tuple[bool, str]:
        """
        Validate a student submission
        Returns (is_valid: bool, error_message: str)
        """
        if not isinstance(data, dict):
            return False, "Ticket data must be an object"

        for field in REQUIRED_TICKET_FIELDS:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                return False, f"Missing required field: {field}"

        if data['department'] not in DEPARTMENTS:
            return False, f"Invalid department: {data['department']}"

        if data['year'] not in STUDENT_YEARS:
            return False, f"Invalid year: {data['year']}"

        if data['device_type'] not in DEVICE_TYPES:
            return False, f"Invalid device type: {data['device_type']}"

        if data['issue_category'] not in ISSUE_CATEGORIES:
            return False, f"Invalid issue category: {data['issue_category']}"

        if data.get('issue_type') and data['issue_type'] not in ISSUE_TYPES:
            return False, f"Invalid issue type: {data['issue_type']}"

        if data.get('priority') and data['priority'] not in PRIORITY_LEVELS:
            return False, f"Invalid priority level: {data['priority']}"

        try:
            ipaddress.ip_address(str(data['device_ip_address']).strip())
        except ValueError:
            return False, "Invalid device IP address"

        description = str(data['issue_description']).strip()
        if len(description) < MIN_DESCRIPTION_LENGTH:
            return False, f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters"
        if len(description) > MAX_DESCRIPTION_LENGTH:
            return False, f"Description must not exceed {MAX_DESCRIPTION_LENGTH} characters"

        return True, ""

    def create_ticket(self, data: Dict, actor_email: Optional[str] = None,
                      now: Optional[datetime] = None) -> Dict:
        """
        Create a new ticket with status 'open'
        Returns response dict with success status and the stored ticket
        """
        is_valid, error_msg = self.validate_ticket_data(data)
        if not is_valid:
            logger.info(f"TICKET_REJECTED | {error_msg}")
            return {"success": False, "error": "validation", "message": error_msg}

        submission = {
            key: (value.strip() or None) if isinstance(value, str) else value
            for key, value in data.items()
        }
        if not submission.get('student_id'):
            submission['student_id'] = generate_student_id()
        if not submission.get('student_email'):
            submission['student_email'] = derive_student_email(submission['student_name'])

        ticket = self.repository.create(submission, now)
        ticket_id = ticket['ticket_id']

        if self.activity:
            self.activity.log_activity(
                ticket_id, ActivityType.TICKET_CREATED,
                f"Ticket submitted by {ticket['student_name']}",
                actor_email or ticket.get('student_email')
            )

        if self.notifier:
            self.notifier.notify_new_ticket(ticket)

        return {
            "success": True,
            "ticket_id": ticket_id,
            "ticket": serialize_ticket(ticket, now, self.threshold_minutes),
            "message": f"Ticket {ticket_id} created successfully"
        }

    # ============================================
    # Read
    # ============================================

    def list_tickets(self, category: str = 'all', tab: str = 'all',
                     now: Optional[datetime] = None) -> List[Dict]:
        """
        Tickets for the IT board, newest first.

        Raises:
            ValueError: for an unknown category or tab
        """
        now = ensure_aware(now) if now is not None else utc_now()
        tickets = filter_tickets(self.repository.list(), category, tab, now, self.threshold_minutes)
        return [serialize_ticket(t, now, self.threshold_minutes) for t in tickets]

    def list_overdue(self, now: Optional[datetime] = None) -> List[Dict]:
        now = ensure_aware(now) if now is not None else utc_now()
        tickets = overdue_tickets(self.repository.list(), now, self.threshold_minutes)
        return [serialize_ticket(t, now, self.threshold_minutes) for t in tickets]

    def get_ticket(self, ticket_id: str, now: Optional[datetime] = None) -> Optional[Dict]:
        ticket = self.repository.get(ticket_id)
        if ticket is None:
            return None
        return serialize_ticket(ticket, now, self.threshold_minutes)

    def get_student_tickets(self, student_id: str, now: Optional[datetime] = None) -> List[Dict]:
        now = ensure_aware(now) if now is not None else utc_now()
        return [
            serialize_ticket(t, now, self.threshold_minutes)
            for t in self.repository.list_by_student(student_id)
        ]

    # ============================================
    # Update
    # ============================================

    def update_ticket(self, ticket_id: str, fields: Dict, actor_email: Optional[str] = None,
                      now: Optional[datetime] = None) -> Dict:
        """
        Apply an IT-side partial update.
        Only editable fields are applied; ticket_id and created_at never change.
        """
        current = self.repository.get(ticket_id)
        if current is None:
            return {"success": False, "error": "not_found", "message": f"Ticket {ticket_id} not found"}

        try:
            cleaned = clean_update_fields(fields)
        except ValueError as e:
            return {"success": False, "error": "validation", "message": str(e)}

        new_status = cleaned.get('status')
        if new_status and not can_transition(current['status'], new_status):
            return {
                "success": False,
                "error": "validation",
                "message": f"Cannot move ticket from {current['status']} to {new_status}"
            }

        ticket = self.repository.update(ticket_id, cleaned, now)
        if ticket is None:
            return {"success": False, "error": "not_found", "message": f"Ticket {ticket_id} not found"}

        if self.activity:
            if new_status and new_status != current['status']:
                self.activity.log_activity(
                    ticket_id, ActivityType.STATUS_CHANGED,
                    f"Status changed from {current['status']} to {new_status}",
                    actor_email
                )
            other_fields = sorted(k for k in cleaned if k != 'status')
            if other_fields:
                self.activity.log_activity(
                    ticket_id, ActivityType.TICKET_UPDATED,
                    f"Updated {', '.join(other_fields)}",
                    actor_email
                )

        logger.info(f"TICKET_UPDATE_OK | {ticket_id} | {', '.join(sorted(cleaned)) or 'touch'}")
        return {
            "success": True,
            "ticket": serialize_ticket(ticket, now, self.threshold_minutes)
        }

    # ============================================
    # Report files
    # ============================================

    @staticmethod
    def validate_report_file(filename: Optional[str], content: Optional[str],
                             content_type: Optional[str] = None) -> Tuple[bool, str]:
        if not filename:
            return False, "No file provided"

        ext = os.path.splitext(filename)[1].lower().lstrip('.')
        mimetype = (content_type or '').split(';')[0].strip().lower()
        if ext not in ALLOWED_REPORT_TYPES and mimetype not in ALLOWED_REPORT_MIMETYPES:
            return False, f"Invalid file type. Allowed: {', '.join(ALLOWED_REPORT_TYPES)}"

        if content is None:
            return False, "Report file is empty"
        if len(content.encode('utf-8')) > MAX_REPORT_SIZE_KB * 1024:
            return False, f"Report file exceeds max size of {MAX_REPORT_SIZE_KB}KB"

        return True, ""

    def attach_report(self, ticket_id: str, filename: str, content: str,
                      content_type: Optional[str] = None, actor_email: Optional[str] = None,
                      now: Optional[datetime] = None) -> Dict:
        """Store a CSV repair report on the ticket, replacing any previous one"""
        if self.repository.get(ticket_id) is None:
            return {"success": False, "error": "not_found", "message": f"Ticket {ticket_id} not found"}

        is_valid, error_msg = self.validate_report_file(filename, content, content_type)
        if not is_valid:
            return {"success": False, "error": "validation", "message": error_msg}

        uploaded_at = ensure_aware(now) if now is not None else utc_now()
        report = {'name': os.path.basename(filename), 'data': content, 'uploaded_at': uploaded_at}
        ticket = self.repository.update(ticket_id, {'report_file': report}, uploaded_at)

        if self.activity:
            self.activity.log_activity(
                ticket_id, ActivityType.REPORT_UPLOADED, f"Report {report['name']} uploaded", actor_email
            )

        logger.info(f"REPORT_UPLOADED | {ticket_id} | {report['name']} | {len(content)} chars")
        return {
            "success": True,
            "ticket": serialize_ticket(ticket, uploaded_at, self.threshold_minutes)
        }

    def get_report(self, ticket_id: str) -> Dict:
        """Report contents exactly as uploaded"""
        ticket = self.repository.get(ticket_id)
        if ticket is None:
            return {"success": False, "error": "not_found", "message": f"Ticket {ticket_id} not found"}

        report = ticket.get('report_file')
        if not report:
            return {"success": False, "error": "not_found", "message": f"Ticket {ticket_id} has no report file"}

        return {"success": True, "name": report['name'], "data": report['data']}

"""
Ticket Lifecycle Policy
Status rules, overdue detection, board filtering, and update field cleaning.

All functions are pure: "now" is passed in (or read fresh on every call),
so overdue state is recomputed on each read and never cached.
"""
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Union

import pytz

from config import OVERDUE_THRESHOLD_MINUTES
from tickets.ticket_config import (
    TICKET_STATUS, INACTIVE_STATUSES, CATEGORY_FILTERS, PRIORITY_LEVELS,
    ENGINEERS, UPDATABLE_FIELDS, EXTERNAL_FIELDS
)

DateLike = Union[datetime, str, None]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(pytz.utc)


def ensure_aware(value: DateLike) -> Optional[datetime]:
    """Parse ISO strings and treat naive datetimes as UTC"""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


# ============================================
# Status rules
# ============================================

def is_valid_status(status: Optional[str]) -> bool:
    return status in TICKET_STATUS


def is_active(status: Optional[str]) -> bool:
    """A ticket is active until it is resolved or closed"""
    return status not in INACTIVE_STATUSES


def can_transition(current: Optional[str], new: Optional[str]) -> bool:
    """
    Any defined status may follow any other.
    This is the single place a transition graph would be enforced.
    """
    return is_valid_status(new)


# ============================================
# Overdue detection
# ============================================

def ticket_age(created_at: DateLike, now: DateLike = None) -> timedelta:
    now = ensure_aware(now) if now is not None else utc_now()
    return now - ensure_aware(created_at)


def is_overdue(
    status: Optional[str],
    created_at: DateLike,
    now: DateLike = None,
    threshold_minutes: int = OVERDUE_THRESHOLD_MINUTES
) -> bool:
    """
    Overdue = still active and older than the threshold.

    Args:
        status: Current ticket status
        created_at: Creation timestamp (datetime or ISO string)
        now: Reference time, defaults to the current UTC time
        threshold_minutes: Age after which an active ticket is overdue
    """
    if not is_active(status) or created_at is None:
        return False
    return ticket_age(created_at, now) > timedelta(minutes=threshold_minutes)


def ticket_is_overdue(ticket: Dict, now: DateLike = None,
                      threshold_minutes: int = OVERDUE_THRESHOLD_MINUTES) -> bool:
    return is_overdue(ticket.get('status'), ticket.get('created_at'), now, threshold_minutes)


def overdue_tickets(tickets: Iterable[Dict], now: DateLike = None,
                    threshold_minutes: int = OVERDUE_THRESHOLD_MINUTES) -> List[Dict]:
    now = ensure_aware(now) if now is not None else utc_now()
    return [t for t in tickets if ticket_is_overdue(t, now, threshold_minutes)]


def unassigned_over_threshold(tickets: Iterable[Dict], now: DateLike = None,
                              threshold_minutes: int = OVERDUE_THRESHOLD_MINUTES) -> List[Dict]:
    """Tickets still sitting in 'open' past the threshold (dashboard alert)"""
    now = ensure_aware(now) if now is not None else utc_now()
    return [
        t for t in tickets
        if t.get('status') == 'open' and ticket_is_overdue(t, now, threshold_minutes)
    ]


# ============================================
# Board filtering
# ============================================

def filter_by_category(tickets: Iterable[Dict], category: Optional[str] = 'all') -> List[Dict]:
    """Order-preserving category filter ('software', 'hardware' or 'all')"""
    category = (category or 'all').strip().lower()
    if category not in CATEGORY_FILTERS:
        raise ValueError(f"Invalid category filter: {category}")
    if category == 'all':
        return list(tickets)
    return [t for t in tickets if t.get('issue_category') == category]


def filter_by_status(tickets: Iterable[Dict], status: str) -> List[Dict]:
    if not is_valid_status(status):
        raise ValueError(f"Invalid status: {status}")
    return [t for t in tickets if t.get('status') == status]


def filter_by_tab(tickets: Iterable[Dict], tab: Optional[str] = 'all', now: DateLike = None,
                  threshold_minutes: int = OVERDUE_THRESHOLD_MINUTES) -> List[Dict]:
    """Order-preserving tab filter: 'all', 'overview', 'overdue' or a status name"""
    tab = (tab or 'all').strip().lower()
    if tab in ('all', 'overview'):
        return list(tickets)
    if tab == 'overdue':
        return overdue_tickets(tickets, now, threshold_minutes)
    if is_valid_status(tab):
        return filter_by_status(tickets, tab)
    raise ValueError(f"Invalid tab: {tab}")


def filter_tickets(tickets: Iterable[Dict], category: Optional[str] = 'all', tab: Optional[str] = 'all',
                   now: DateLike = None, threshold_minutes: int = OVERDUE_THRESHOLD_MINUTES) -> List[Dict]:
    """
    Apply the IT board filters.
    The overview tab always shows every category, matching the dashboard.
    """
    tickets = list(tickets)
    if (tab or 'all').strip().lower() == 'overview':
        # still reject garbage category values
        filter_by_category([], category)
        return tickets
    return filter_by_tab(filter_by_category(tickets, category), tab, now, threshold_minutes)


# ============================================
# Updates
# ============================================

def _optional_text(field: str, value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field} must be text")
    value = value.strip()
    return value or None


def clean_update_fields(fields: Dict) -> Dict:
    """
    Keep only the fields IT staff may change and validate their values.
    Identity and timestamp fields are dropped, never applied.

    Raises:
        ValueError: when a value is outside its allowed set
    """
    if not isinstance(fields, dict):
        raise ValueError("Update payload must be an object")

    cleaned = {key: fields[key] for key in UPDATABLE_FIELDS if key in fields}

    if 'status' in cleaned and not is_valid_status(cleaned['status']):
        raise ValueError(f"Invalid status: {cleaned['status']}")

    if 'priority' in cleaned:
        priority = cleaned['priority'] or None
        if priority is not None and priority not in PRIORITY_LEVELS:
            raise ValueError(f"Invalid priority level: {priority}")
        cleaned['priority'] = priority

    if 'assigned_engineer' in cleaned:
        engineer = cleaned['assigned_engineer'] or None
        if engineer is not None and engineer not in ENGINEERS:
            raise ValueError(f"Unknown engineer: {engineer}")
        cleaned['assigned_engineer'] = engineer

    for field in ('notes', 'internal_notes', 'estimated_repair_time') + tuple(EXTERNAL_FIELDS):
        if field in cleaned:
            cleaned[field] = _optional_text(field, cleaned[field])

    if 'is_external' in cleaned:
        if not isinstance(cleaned['is_external'], bool):
            raise ValueError("is_external must be true or false")
        if not cleaned['is_external']:
            for field in EXTERNAL_FIELDS:
                cleaned[field] = None

    return cleaned


def stamp_updated(created_at: DateLike, now: DateLike = None) -> datetime:
    """updated_at for a change made at `now`; never earlier than created_at"""
    now = ensure_aware(now) if now is not None else utc_now()
    created_at = ensure_aware(created_at)
    if created_at is not None and now < created_at:
        return created_at
    return now

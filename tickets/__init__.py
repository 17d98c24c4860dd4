"""
Tickets Package - Lifecycle policy, stores, and login resolution
"""
from .ticket_db import TicketRepository, InMemoryTicketRepository, SQLiteTicketRepository
from .ticket_service import TicketService
from .account_db import AccountDatabase
from .auth_resolver import LoginResolver
from .common_issues import CommonIssueDatabase

__all__ = [
    "TicketRepository", "InMemoryTicketRepository", "SQLiteTicketRepository",
    "TicketService", "AccountDatabase", "LoginResolver", "CommonIssueDatabase",
]

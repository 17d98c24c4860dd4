"""
Ticket System Configuration
Statuses, categories, form option lists, and update rules
"""

# Ticket status options, in board order
TICKET_STATUS = ["open", "assigned", "in-progress", "waiting-external", "resolved", "closed"]

# Statuses that stop the overdue clock
INACTIVE_STATUSES = ["resolved", "closed"]

STATUS_LABELS = {
    "open": "Open",
    "assigned": "Assigned",
    "in-progress": "In Progress",
    "waiting-external": "External Repair",
    "resolved": "Resolved",
    "closed": "Closed"
}

# Issue categories used by the IT board filter
ISSUE_CATEGORIES = ["software", "hardware"]
ISSUE_TYPES = ["software", "hardware", "other"]

# Board views besides the plain status names
CATEGORY_FILTERS = ["all"] + ISSUE_CATEGORIES
SPECIAL_TABS = ["all", "overview", "overdue"]

# Priority levels
PRIORITY_LEVELS = ["low", "medium", "high", "critical"]

# Student form options
DEPARTMENTS = {
    "IS": "Information Systems",
    "CS": "Computer Science"
}
STUDENT_YEARS = ["senior", "wheeler", "junior"]
DEVICE_TYPES = ["HP Zbook G3", "HP Silver", "Dell Latitude"]

# IT engineers a ticket can be assigned to
ENGINEERS = {
    "eng-khalid": "Eng. Khalid",
    "eng-essam": "Eng. Essam"
}

# Fields a student must supply when submitting a ticket
REQUIRED_TICKET_FIELDS = [
    "student_name", "department", "year", "class_year", "instructor_name",
    "device_type", "device_ip_address", "issue_description", "issue_category"
]

# Fields IT staff may change after submission
UPDATABLE_FIELDS = [
    "status", "priority", "assigned_engineer", "notes", "internal_notes",
    "estimated_repair_time", "is_external", "external_repair_company",
    "external_tracking_number"
]

# Everything a repository writes on update; reports only arrive through attach_report
STORED_FIELDS = UPDATABLE_FIELDS + ["report_file"]

# Cleared whenever a ticket leaves external repair
EXTERNAL_FIELDS = ["external_repair_company", "external_tracking_number"]

# Description validation
MIN_DESCRIPTION_LENGTH = 10
MAX_DESCRIPTION_LENGTH = 1000

# Report file validation (CSV only)
ALLOWED_REPORT_TYPES = ["csv"]
ALLOWED_REPORT_MIMETYPES = ["text/csv", "application/csv"]

# Ticket id format
TICKET_ID_PREFIX = "TKT"
STUDENT_ID_PREFIX = "STU"
STUDENT_EMAIL_DOMAIN = "school.edu"

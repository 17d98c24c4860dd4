"""
Common Issues Catalog
Self-help fixes students can try before raising a ticket; IT staff can add more.
"""
import json
import logging
from typing import Dict, List, Optional, Tuple

from db_config import db_connection, resolve_db_path
from tickets.lifecycle import utc_now
from tickets.ticket_config import ISSUE_CATEGORIES, CATEGORY_FILTERS

logger = logging.getLogger('common_issues')

DEFAULT_ISSUES = [
    {
        "issue": "Wi-Fi Not Connecting",
        "category": "software",
        "fix_steps": [
            "Check if Wi-Fi is enabled on your device",
            "Restart your Wi-Fi adapter (turn off and on)",
            "Forget the network and reconnect",
            "Update network drivers from Device Manager",
            "Reset network settings: Run 'ipconfig /release' and 'ipconfig /renew' in Command Prompt",
            "If still not working, restart your device"
        ]
    },
    {
        "issue": "Laptop Won't Turn On",
        "category": "hardware",
        "fix_steps": [
            "Check if the power adapter is properly connected",
            "Try a different power outlet",
            "Remove the battery (if removable) and try powering on with adapter only",
            "Hold the power button for 30 seconds to reset power",
            "Check for any LED indicators on the device",
            "If no response, the battery or power board may need replacement"
        ]
    },
    {
        "issue": "Screen Stays Black",
        "category": "hardware",
        "fix_steps": [
            "Check if the device is actually on (listen for fan sounds)",
            "Try connecting to an external monitor",
            "Adjust screen brightness (may be turned all the way down)",
            "Press Windows + P to check display settings",
            "Restart the device",
            "If external monitor works, the screen or display cable may be faulty"
        ]
    },
    {
        "issue": "Keyboard Keys Not Responding",
        "category": "hardware",
        "fix_steps": [
            "Restart your device",
            "Check if specific keys or all keys are affected",
            "Update keyboard drivers from Device Manager",
            "Run Windows Troubleshooter for keyboard",
            "Try an external keyboard to test if it's hardware or software"
        ]
    },
    {
        "issue": "Software Crashes Frequently",
        "category": "software",
        "fix_steps": [
            "Close all running applications",
            "Update Windows and all software to latest versions",
            "Check Task Manager for high CPU/memory usage",
            "Uninstall recently installed software that may be causing conflicts",
            "Run System File Checker: 'sfc /scannow' in Command Prompt as Administrator"
        ]
    },
    {
        "issue": "Slow Performance",
        "category": "software",
        "fix_steps": [
            "Close unnecessary programs running in background",
            "Check available disk space (need at least 10% free)",
            "Run Disk Cleanup to remove temporary files",
            "Disable startup programs you don't need",
            "Scan for malware and viruses"
        ]
    },
    {
        "issue": "No Sound/Audio",
        "category": "hardware",
        "fix_steps": [
            "Check if volume is muted or turned down",
            "Verify audio output device is selected correctly",
            "Test with headphones to isolate speaker issue",
            "Update audio drivers from Device Manager"
        ]
    },
    {
        "issue": "Touchpad Not Working",
        "category": "hardware",
        "fix_steps": [
            "Check if the touchpad is disabled (usually an Fn + F key combination)",
            "Restart your device",
            "Update touchpad drivers from the manufacturer website",
            "Check touchpad settings in Windows Settings",
            "Try an external mouse to see whether it is a hardware fault"
        ]
    },
    {
        "issue": "Battery Not Charging",
        "category": "hardware",
        "fix_steps": [
            "Check if the charging cable is properly connected",
            "Inspect the charging port for debris or damage",
            "Try a different charging adapter if available",
            "If battery is swollen or damaged, stop using immediately and contact IT"
        ]
    },
    {
        "issue": "Blue Screen of Death (BSOD)",
        "category": "software",
        "fix_steps": [
            "Note the error code displayed on the blue screen",
            "Check for Windows updates and install them",
            "Update all device drivers, especially graphics and chipset drivers",
            "Check disk for errors: Run 'chkdsk C: /f' in Command Prompt as Administrator"
        ]
    }
]


class CommonIssueDatabase:
    """Stores the common issues catalog next to the tickets"""

    def __init__(self, db_path: Optional[str] = None, seed_defaults: bool = True):
        self.db_path = resolve_db_path('tickets', db_path)
        self._ensure_database_exists(seed_defaults)

    def _ensure_database_exists(self, seed_defaults: bool):
        with db_connection('tickets', self.db_path) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS common_issues (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    issue TEXT NOT NULL,
                    category TEXT NOT NULL,
                    fix_steps TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            ''')
            count = conn.execute('SELECT COUNT(*) FROM common_issues').fetchone()[0]
            if seed_defaults and count == 0:
                now = utc_now().isoformat()
                conn.executemany(
                    'INSERT INTO common_issues (issue, category, fix_steps, created_at) VALUES (?, ?, ?, ?)',
                    [(i['issue'], i['category'], json.dumps(i['fix_steps']), now) for i in DEFAULT_ISSUES]
                )
                logger.info(f"COMMON_ISSUES_SEEDED | {len(DEFAULT_ISSUES)}")

    def list_issues(self, category: str = 'all') -> List[Dict]:
        category = (category or 'all').strip().lower()
        if category not in CATEGORY_FILTERS:
            raise ValueError(f"Invalid category filter: {category}")

        with db_connection('tickets', self.db_path) as conn:
            if category == 'all':
                rows = conn.execute('SELECT * FROM common_issues ORDER BY id').fetchall()
            else:
                rows = conn.execute(
                    'SELECT * FROM common_issues WHERE category = ? ORDER BY id', (category,)
                ).fetchall()

        return [
            {
                'id': row['id'],
                'issue': row['issue'],
                'category': row['category'],
                'fix_steps': json.loads(row['fix_steps']),
                'created_at': row['created_at']
            }
            for row in rows
        ]

    @staticmethod
    def validate_issue(issue: str, category: str, fix_steps) -> Tuple[bool, str]:
        if not issue or not str(issue).strip():
            return False, "Please enter an issue title"
        if category not in ISSUE_CATEGORIES:
            return False, f"Invalid category: {category}"
        if not isinstance(fix_steps, list):
            return False, "fix_steps must be a list"
        if not [step for step in fix_steps if isinstance(step, str) and step.strip()]:
            return False, "Please add at least one fix step"
        return True, ""

    def add_issue(self, issue: str, category: str, fix_steps: List[str]) -> Dict:
        """
        Add a catalog entry; blank steps are dropped.

        Returns:
            {'success': True, 'issue': {...}} or {'success': False, 'message': ...}
        """
        is_valid, error_msg = self.validate_issue(issue, category, fix_steps)
        if not is_valid:
            return {'success': False, 'error': 'validation', 'message': error_msg}

        steps = [step.strip() for step in fix_steps if isinstance(step, str) and step.strip()]
        created_at = utc_now().isoformat()

        with db_connection('tickets', self.db_path) as conn:
            cursor = conn.execute(
                'INSERT INTO common_issues (issue, category, fix_steps, created_at) VALUES (?, ?, ?, ?)',
                (issue.strip(), category, json.dumps(steps), created_at)
            )
            issue_id = cursor.lastrowid

        logger.info(f"COMMON_ISSUE_ADDED | {issue_id} | {issue.strip()}")
        return {
            'success': True,
            'issue': {
                'id': issue_id,
                'issue': issue.strip(),
                'category': category,
                'fix_steps': steps,
                'created_at': created_at
            }
        }

"""
Account Import Utility for TicTrack
Imports accounts, logins and TicTrack role memberships from CSV or Excel files

Usage:
    python -m scripts.seed_accounts --file data/accounts.xlsx --sheet Sheet1
    python -m scripts.seed_accounts --file data/accounts.csv --reset

Expected columns (case-insensitive, flexible naming):
    Email, Full Name (EN), Full Name (AR), Phone, National ID, Role, Password
Rows without a password get their national id as the initial password.
"""
import argparse
import shutil
from datetime import datetime
from pathlib import Path

import pandas as pd

from config import BUSINESS_ENTITY
from db_config import resolve_db_path
from tickets.account_db import AccountDatabase
from tickets.auth_resolver import STUDENT_ROLES, IT_PORTAL_ROLES

KNOWN_ROLES = STUDENT_ROLES + IT_PORTAL_ROLES


def create_backup(db_path: str, backup_dir: str = "data/backups"):
    """Create timestamped backup of database"""
    if not Path(db_path).exists():
        print(f"⚠️ Database {db_path} doesn't exist yet, skipping backup")
        return None

    backup_root = Path(backup_dir)
    backup_root.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = backup_root / f"{Path(db_path).stem}_backup_{timestamp}.db"

    shutil.copy2(db_path, backup_path)
    print(f"✓ Backup created: {backup_path}")
    return str(backup_path)


def map_columns(columns) -> dict:
    """Map spreadsheet headers onto account fields"""
    mapping = {}
    for col in columns:
        col_lower = str(col).lower().strip()
        if 'email' in col_lower:
            mapping['email'] = col
        elif 'arabic' in col_lower or '(ar)' in col_lower or col_lower.endswith('_ar'):
            mapping['full_name_ar'] = col
        elif 'name' in col_lower and 'full_name_en' not in mapping:
            mapping['full_name_en'] = col
        elif 'phone' in col_lower or 'mobile' in col_lower:
            mapping['phone'] = col
        elif 'national' in col_lower:
            mapping['national_id'] = col
        elif 'role' in col_lower:
            mapping['role'] = col
        elif 'password' in col_lower:
            mapping['password'] = col
    return mapping


def _cell(row, mapping: dict, field: str):
    column = mapping.get(field)
    if column is None or pd.isna(row.get(column)):
        return None
    value = str(row[column]).strip()
    return value or None


def import_accounts(df: pd.DataFrame, account_db: AccountDatabase,
                    business_entity: str = BUSINESS_ENTITY) -> dict:
    """
    Create one account + login + role membership per row.

    Returns:
        dict: Import statistics
    """
    mapping = map_columns(df.columns)
    missing = [r for r in ('email', 'full_name_en', 'role') if r not in mapping]
    if missing:
        return {"success": False, "error": f"Missing columns: {missing}"}

    stats = {"total": len(df), "inserted": 0, "skipped": 0, "errors": []}
    role_ids = {}

    for idx, row in df.iterrows():
        email = (_cell(row, mapping, 'email') or '').lower()
        full_name = _cell(row, mapping, 'full_name_en')
        role_name = _cell(row, mapping, 'role')

        if not email or '@' not in email or not full_name:
            stats['errors'].append(f"Row {idx + 2}: Missing email or name")
            stats['skipped'] += 1
            continue

        if role_name not in KNOWN_ROLES:
            stats['errors'].append(f"Row {idx + 2}: Unknown role '{role_name}'")
            stats['skipped'] += 1
            continue

        if account_db.find_login_by_email(email):
            stats['errors'].append(f"Row {idx + 2}: Duplicate email '{email}'")
            stats['skipped'] += 1
            continue

        national_id = _cell(row, mapping, 'national_id') or ''
        password = _cell(row, mapping, 'password') or national_id
        if not password:
            stats['errors'].append(f"Row {idx + 2}: No password or national id")
            stats['skipped'] += 1
            continue

        if role_name not in role_ids:
            role_ids[role_name] = account_db.get_or_create_role(role_name, business_entity)

        account_id = account_db.create_account(
            email=email,
            full_name_en=full_name,
            password=password,
            national_id=national_id,
            full_name_ar=_cell(row, mapping, 'full_name_ar'),
            phone=_cell(row, mapping, 'phone')
        )
        account_db.assign_role(account_id, role_ids[role_name], business_entity)

        stats['inserted'] += 1
        print(f"  ✓ [{stats['inserted']:3d}] {email} | {role_name}")

    stats['success'] = True
    return stats


def load_sheet(file_path: str, sheet_name: str = "Sheet1") -> pd.DataFrame:
    if Path(file_path).suffix.lower() == '.csv':
        return pd.read_csv(file_path, dtype=str)
    return pd.read_excel(file_path, sheet_name=sheet_name, dtype=str)


def main():
    parser = argparse.ArgumentParser(description='Import TicTrack accounts from CSV or Excel')
    parser.add_argument('--file', required=True, help='Path to CSV or Excel file')
    parser.add_argument('--sheet', default='Sheet1', help='Sheet name for Excel files')
    parser.add_argument('--db', default=None, help='Accounts database path')
    parser.add_argument('--reset', action='store_true', help='Delete existing DB before import')
    args = parser.parse_args()

    print("\n" + "=" * 60)
    print("  TICTRACK ACCOUNT IMPORT")
    print("  " + datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
    print("=" * 60)

    db_path = resolve_db_path('accounts', args.db)
    create_backup(db_path)
    if args.reset and Path(db_path).exists():
        Path(db_path).unlink()
        print(f"🗑️  Removed {db_path}")

    df = load_sheet(args.file, args.sheet)
    print(f"✓ Loaded {len(df)} rows (columns: {list(df.columns)})")

    stats = import_accounts(df, AccountDatabase(db_path))
    if not stats.get('success'):
        print(f"❌ {stats['error']}")
        raise SystemExit(1)

    print("\n" + "-" * 60)
    print(f"✓ Import Complete!")
    print(f"  Total rows: {stats['total']}")
    print(f"  Imported: {stats['inserted']}")
    print(f"  Skipped: {stats['skipped']}")
    if stats['errors']:
        print(f"\n⚠️ Errors ({len(stats['errors'])}):")
        for error in stats['errors'][:10]:
            print(f"  - {error}")
    print("=" * 60)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Database reset script for Clinic Scheduler.

This script drops every scheduling table and recreates it empty.
Use this to get a clean local database for manual testing.
"""

import os
import sys

# Add backend/src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'backend', 'src'))

from sqlalchemy import inspect

from core.config import DATABASE_URL
from core.database import create_tables, drop_tables, engine

EXPECTED_TABLES = [
    'clinics', 'doctors', 'patients', 'appointment_types', 'patient_packages',
    'appointments', 'appointment_event_logs', 'notifications',
    'financial_record_lines', 'appointment_financial_record_lines',
]


def reset_database(force: bool = False):
    """Reset the database by dropping all tables and recreating them."""

    print("🔄 Resetting Clinic Scheduler database...")
    print(f"Database URL: {DATABASE_URL}")

    # Confirm action (in case someone runs this accidentally)
    if not DATABASE_URL.startswith("sqlite") and not force:
        print("❌ ERROR: Refusing to reset a non-SQLite database without --force!")
        return

    print("🗑️  Dropping existing tables...")
    drop_tables()

    print("🏗️  Creating fresh tables...")
    create_tables()

    table_names = inspect(engine).get_table_names()
    print("📋 Created tables:")
    for table in EXPECTED_TABLES:
        if table in table_names:
            print(f"   ✅ {table}")
        else:
            print(f"   ❌ {table} (missing)")

    if all(table in table_names for table in EXPECTED_TABLES):
        print("🎉 Database reset complete! All tables created successfully.")
    else:
        print("⚠️  Warning: Some tables may be missing")


def show_usage():
    """Show usage information."""
    print("Clinic Scheduler Database Reset Script")
    print("=" * 40)
    print()
    print("This script will:")
    print("1. Drop all existing tables")
    print("2. Recreate all tables with empty data")
    print()
    print("Usage:")
    print("  python reset_database.py [--force]")
    print()
    print("Note: Non-SQLite databases require --force")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] in ['--help', '-h']:
        show_usage()
    else:
        reset_database(force='--force' in sys.argv[1:])

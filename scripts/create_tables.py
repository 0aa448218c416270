#!/usr/bin/env python3
"""
Script to create every Kanasu table in the configured database.
Run this once to initialize a fresh database schema.

Usage:
    python scripts/create_tables.py
"""
import sys
import os

# Add the parent directory to the path so we can import kanasu modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kanasu.core.database import create_tables, engine
from kanasu.models import Base


def main():
    print("Creating Kanasu database tables...")
    print(f"DB URL: {engine.url.render_as_string(hide_password=True)}")

    print("\nTables to be created:")
    for table_name in Base.metadata.tables.keys():
        print(f"  - {table_name}")

    create_tables()

    print("\nDatabase tables created successfully!")


if __name__ == "__main__":
    main()

"""
Initialize the database schema
Creates the users, shops, products and orders tables
"""
import sys
import os

# Add parent directory to path to import backend modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import Base, engine, init_db


def init_database():
    """Create all tables in the database"""
    print("Creating tables...")

    try:
        init_db()
    except Exception as e:
        print(f"✗ Error creating tables: {e}")
        sys.exit(1)

    print("✓ Tables created successfully!")
    print("\nTables:")
    for name in sorted(Base.metadata.tables):
        print(f"  - {name}")
    print(f"\nDatabase: {engine.url.render_as_string(hide_password=True)}")


if __name__ == "__main__":
    init_database()

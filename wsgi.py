"""
WSGI / Flask-Migrate entry point.

Usage:
    flask db upgrade
    python scripts/seed_demo_data.py
"""

from app import create_app

app = create_app()

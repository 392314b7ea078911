"""
Digital Employee Onboarding Tracker
Blueprint registry.
"""

from app.blueprints.health_bp import health_bp
from app.blueprints.portfolio_bp import portfolio_bp

ALL_BLUEPRINTS = (health_bp, portfolio_bp)

#!/usr/bin/env python3
"""
Digital Employee Onboarding Tracker — Demo Portfolio Seed.

Creates three companies with Digital Employees spread across the journey so the
portfolio predictions view shows every risk status:
  - a fast mover well ahead of its go-live date      (on_track)
  - a slow engagement with a near target             (at_risk / likely_delayed)
  - an engagement with no committed go-live date     (no_target)
  - a live engagement that is excluded from the portfolio

Usage:
    python scripts/seed_demo_data.py            # Clear onboarding tables + seed
    python scripts/seed_demo_data.py --append   # Seed without clearing
"""

import argparse
import sys
from datetime import date, datetime, timedelta, timezone

sys.path.insert(0, ".")

from app import create_app
from app.models import db
from app.models.onboarding import Company, DigitalEmployee, JourneyPhase, Prerequisite
from app.services.phase_pipeline import get_phase

_now = datetime.now(timezone.utc)


def _days_ago(n):
    return _now - timedelta(days=n)


def _phase(de, key, status, started=None, completed=None, planned=None):
    phase = get_phase(key)
    jp = JourneyPhase(
        digital_employee=de,
        phase_type=key,
        order=phase.order,
        status=status,
        started_at=started,
        completed_at=completed,
        planned_duration_days=planned,
    )
    db.session.add(jp)
    return jp


def seed_demo_portfolio():
    """Create the demo companies and engagements. Returns the number of DEs created."""
    acme = Company(name="Acme Insurance", industry="Insurance")
    globex = Company(name="Globex Logistics", industry="Logistics")
    initech = Company(name="Initech Banking", industry="Banking")
    db.session.add_all([acme, globex, initech])

    # Fast mover: both completed phases closed ahead of plan.
    claims = DigitalEmployee(
        company=acme, name="Claims Assistant", status="onboarding",
        current_journey_phase="onboarding",
        go_live_date=(_now + timedelta(days=120)).date(),
    )
    db.session.add(claims)
    _phase(claims, "sales_handover", "complete", _days_ago(30), _days_ago(27))
    _phase(claims, "kickoff", "complete", _days_ago(27), _days_ago(26))
    _phase(claims, "design_week", "complete", _days_ago(26), _days_ago(18))
    _phase(claims, "onboarding", "in_progress", _days_ago(18))

    # Slow engagement: design week overran, go-live committed for next month.
    dispatch = DigitalEmployee(
        company=globex, name="Dispatch Coordinator", status="design",
        current_journey_phase="design_week",
        go_live_date=(_now + timedelta(days=30)).date(),
    )
    db.session.add(dispatch)
    _phase(dispatch, "sales_handover", "complete", _days_ago(40), _days_ago(30))
    _phase(dispatch, "kickoff", "complete", _days_ago(30), _days_ago(25))
    _phase(dispatch, "design_week", "in_progress", _days_ago(25), planned=15)
    db.session.add_all([
        Prerequisite(digital_employee=dispatch, title="TMS API credentials",
                     status="blocked", blocks_phase="onboarding"),
        Prerequisite(digital_employee=dispatch, title="Sample shipment data",
                     status="received", blocks_phase="design_week"),
    ])

    # No committed go-live date yet.
    kyc = DigitalEmployee(
        company=initech, name="KYC Reviewer", status="design",
        current_journey_phase="kickoff",
    )
    db.session.add(kyc)
    _phase(kyc, "sales_handover", "complete", _days_ago(6), _days_ago(4))
    db.session.add(Prerequisite(digital_employee=kyc, title="Policy handbook", status="pending"))

    # Already live — not part of the forecast portfolio.
    helpdesk = DigitalEmployee(
        company=initech, name="IT Helpdesk Agent", status="live",
        current_journey_phase="hypercare",
        go_live_date=date.today() - timedelta(days=10),
    )
    db.session.add(helpdesk)

    db.session.flush()
    return 4


def main():
    parser = argparse.ArgumentParser(description="Seed demo portfolio")
    parser.add_argument("--append", action="store_true")
    args = parser.parse_args()

    app = create_app()
    print(f"DB: {app.config['SQLALCHEMY_DATABASE_URI']}")
    with app.app_context():
        db.create_all()
        if not args.append:
            for model in (Prerequisite, JourneyPhase, DigitalEmployee, Company):
                db.session.query(model).delete()
        count = seed_demo_portfolio()
        db.session.commit()
    print(f"Seeded {count} digital employees.")


if __name__ == "__main__":
    main()

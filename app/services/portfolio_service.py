"""
Digital Employee Onboarding Tracker
Portfolio Service — deadline predictions over the active engagement portfolio.

Thin glue between persistence and the pure prediction engine:
  - Reads every active Digital Employee (with company, journey phases and
    prerequisites) in a single query
  - Converts each row to the engine's plain-data snapshot
  - Runs the engine with the configured at-risk window and an injected clock

Read-only: nothing here writes to the database.  Any database failure is raised
as DataSourceError so the caller can return a generic failure instead of a
partial portfolio.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from app.core.exceptions import DataSourceError
from app.models import db
from app.models.onboarding import Company, DigitalEmployee
from app.services import phase_pipeline
from app.services.deadline_prediction import (
    AT_RISK_WINDOW_DAYS,
    PortfolioForecast,
    assemble_portfolio,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_ACTIVE_STATUSES = ("design", "onboarding")


def load_active_engagements(statuses=DEFAULT_ACTIVE_STATUSES) -> list[dict]:
    """Return prediction snapshots for every engagement in one of ``statuses``.

    Ordered by company name, then engagement name.

    Raises:
        DataSourceError: the query failed or the connection is unavailable.
    """
    stmt = (
        select(DigitalEmployee)
        .join(Company, DigitalEmployee.company_id == Company.id)
        .where(DigitalEmployee.status.in_(tuple(statuses)))
        .options(
            selectinload(DigitalEmployee.journey_phases),
            selectinload(DigitalEmployee.prerequisites),
        )
        .order_by(Company.name, DigitalEmployee.name)
    )
    try:
        rows = db.session.execute(stmt).scalars().all()
        return [de.to_prediction_input() for de in rows]
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise DataSourceError("Failed to load active digital employees") from exc


def get_deadline_predictions(
    *,
    clock: Callable[[], datetime] = utcnow,
    at_risk_days: int = AT_RISK_WINDOW_DAYS,
    statuses=DEFAULT_ACTIVE_STATUSES,
) -> PortfolioForecast:
    """Forecast the active portfolio.

    Malformed engagements are excluded and listed in ``forecast.skipped``;
    a data-source failure propagates as DataSourceError.
    """
    engagements = load_active_engagements(statuses)
    forecast = assemble_portfolio(engagements, clock=clock, at_risk_days=at_risk_days)

    log = logger.warning if forecast.skipped else logger.info
    log(
        "Deadline predictions: %d forecast, %d skipped",
        forecast.summary.total, len(forecast.skipped),
        extra={
            "prediction_count": forecast.summary.total,
            "skipped_count": len(forecast.skipped),
        },
    )
    return forecast


def get_pipeline() -> list[dict]:
    """Canonical phase pipeline as serialisable reference data."""
    return [phase.to_dict() for phase in phase_pipeline.PIPELINE]

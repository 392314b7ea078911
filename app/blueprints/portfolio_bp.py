"""
Digital Employee Onboarding Tracker
Portfolio Blueprint — go-live forecasting across active engagements.

Endpoints:
    GET /api/v1/portfolio/predictions   — risk-ranked deadline predictions + summary
    GET /api/v1/portfolio/phases        — canonical phase pipeline (reference data)

Response envelope:
    200 {"success": true,  "data": {...}}
    500 {"success": false, "error": "Failed to calculate deadline predictions", "code": ...}
"""

import logging

from flask import Blueprint, current_app

from app.core.exceptions import DataSourceError
from app.services import portfolio_service
from app.services.deadline_prediction import utcnow
from app.utils.errors import E, api_error, api_success

logger = logging.getLogger(__name__)

portfolio_bp = Blueprint("portfolio", __name__, url_prefix="/api/v1/portfolio")

PREDICTIONS_FAILED = "Failed to calculate deadline predictions"


@portfolio_bp.route("/predictions", methods=["GET"])
def deadline_predictions():
    """Return go-live predictions for all active Digital Employees.

    Engagements whose data cannot be forecast are listed under ``skipped``
    (and counted in ``summary.skipped``); they never fail the request.

    Returns:
        200 with {predictions, summary, skipped}
        500 if the engagement data could not be read or forecast.
    """
    try:
        forecast = portfolio_service.get_deadline_predictions(
            clock=current_app.config.get("PREDICTION_CLOCK", utcnow),
            at_risk_days=current_app.config["PREDICTION_AT_RISK_DAYS"],
            statuses=current_app.config["PREDICTION_ACTIVE_STATUSES"],
        )
    except DataSourceError:
        logger.exception("Error calculating predictions")
        return api_error(E.DATA_SOURCE, PREDICTIONS_FAILED)
    except Exception:
        logger.exception("Unexpected error calculating predictions")
        return api_error(E.INTERNAL, PREDICTIONS_FAILED)

    return api_success(forecast.to_dict())


@portfolio_bp.route("/phases", methods=["GET"])
def pipeline_phases():
    """Return the canonical 8-phase delivery pipeline."""
    phases = portfolio_service.get_pipeline()
    return api_success({"phases": phases, "total": len(phases)})

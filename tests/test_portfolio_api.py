"""
Tests: Portfolio Predictions API.

Covers:
  1. predictions_empty_portfolio_returns_zero_summary
  2. predictions_no_target_engagement
  3. predictions_only_include_active_statuses
  4. predictions_ranked_by_risk_with_matching_summary
  5. predictions_velocity_from_stored_phase_history
  6. predictions_malformed_engagement_reported_as_skipped
  7. predictions_data_source_failure_returns_500_envelope
     (and any unexpected error returns the same envelope)
  8. phases_endpoint_returns_pipeline
  9. health probes and JSON 404

All test data is created via ORM helpers; the `session` autouse fixture drops
and recreates the schema after every test.  The `frozen_clock` fixture pins
the prediction clock so projected dates are deterministic.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.exceptions import DataSourceError
from app.models import db as _db
from app.models.onboarding import Company, DigitalEmployee, JourneyPhase, Prerequisite
from app.services import portfolio_service

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

PREDICTIONS_URL = "/api/v1/portfolio/predictions"

# A design_week engagement with no history lands 59 planned days after NOW.
DEFAULT_PREDICTED = (NOW + timedelta(days=59)).date()


# ── ORM helpers ────────────────────────────────────────────────────────────────


def _make_company(name: str = "Acme Insurance") -> Company:
    c = Company(name=name, industry="Insurance")
    _db.session.add(c)
    _db.session.flush()
    return c


def _make_de(
    company_id: int,
    name: str = "Claims Agent",
    status: str = "design",
    current_journey_phase: str = "design_week",
    go_live_date: date | None = None,
) -> DigitalEmployee:
    de = DigitalEmployee(
        company_id=company_id,
        name=name,
        status=status,
        current_journey_phase=current_journey_phase,
        go_live_date=go_live_date,
    )
    _db.session.add(de)
    _db.session.flush()
    return de


def _make_phase(
    de_id: int,
    phase_type: str,
    order: int,
    status: str = "not_started",
    started_at: datetime | None = None,
    completed_at: datetime | None = None,
    planned_duration_days: float | None = None,
) -> JourneyPhase:
    ph = JourneyPhase(
        digital_employee_id=de_id,
        phase_type=phase_type,
        order=order,
        status=status,
        started_at=started_at,
        completed_at=completed_at,
        planned_duration_days=planned_duration_days,
    )
    _db.session.add(ph)
    _db.session.flush()
    return ph


def _make_prereq(de_id: int, title: str = "VPN access", status: str = "pending") -> Prerequisite:
    p = Prerequisite(digital_employee_id=de_id, title=title, status=status)
    _db.session.add(p)
    _db.session.flush()
    return p


def _get_predictions(client):
    res = client.get(PREDICTIONS_URL)
    assert res.status_code == 200
    body = res.get_json()
    assert body["success"] is True
    return body["data"]


# ═══════════════════════════════════════════════════════════════════════════
# GET /portfolio/predictions
# ═══════════════════════════════════════════════════════════════════════════


def test_predictions_empty_portfolio_returns_zero_summary(client, frozen_clock):
    data = _get_predictions(client)

    assert data["predictions"] == []
    assert data["skipped"] == []
    assert data["summary"] == {
        "total": 0, "onTrack": 0, "atRisk": 0, "likelyDelayed": 0, "noTarget": 0, "skipped": 0,
    }


def test_predictions_no_target_engagement(client, frozen_clock):
    company = _make_company()
    de = _make_de(company.id)
    _make_prereq(de.id, status="blocked")
    _make_prereq(de.id, title="Test data", status="received")
    _db.session.commit()

    data = _get_predictions(client)
    assert len(data["predictions"]) == 1
    p = data["predictions"][0]

    assert p["engagementId"] == de.id
    assert p["engagementName"] == "Claims Agent"
    assert p["companyName"] == "Acme Insurance"
    assert p["currentPhaseKey"] == "design_week"
    assert p["currentPhase"] == "Design Week"
    assert p["riskStatus"] == "no_target"
    assert p["targetGoLive"] is None
    assert p["daysAhead"] is None
    assert p["velocityRatio"] == 1.0
    assert p["blockerCount"] == 1
    assert p["completedPhases"] == 0
    assert p["totalPhases"] == 8
    assert datetime.fromisoformat(p["predictedGoLive"]).date() == DEFAULT_PREDICTED
    assert data["summary"]["noTarget"] == 1


def test_predictions_only_include_active_statuses(client, frozen_clock):
    company = _make_company()
    _make_de(company.id, name="Designing", status="design")
    _make_de(company.id, name="Building", status="onboarding")
    _make_de(company.id, name="Running", status="live")
    _make_de(company.id, name="Shelved", status="cancelled")
    _db.session.commit()

    data = _get_predictions(client)
    names = {p["engagementName"] for p in data["predictions"]}

    assert names == {"Designing", "Building"}
    assert data["summary"]["total"] == 2


def test_predictions_ranked_by_risk_with_matching_summary(client, frozen_clock):
    acme = _make_company("Acme Insurance")
    globex = _make_company("Globex Retail")
    _make_de(acme.id, name="On Track", go_live_date=DEFAULT_PREDICTED + timedelta(days=20))
    _make_de(acme.id, name="No Target")
    _make_de(globex.id, name="Slipping", go_live_date=DEFAULT_PREDICTED - timedelta(days=7))
    _make_de(globex.id, name="Late", go_live_date=DEFAULT_PREDICTED - timedelta(days=30))
    _db.session.commit()

    data = _get_predictions(client)
    predictions = data["predictions"]

    assert [p["engagementName"] for p in predictions] == [
        "Late", "Slipping", "No Target", "On Track",
    ]
    assert [p["riskStatus"] for p in predictions] == [
        "likely_delayed", "at_risk", "no_target", "on_track",
    ]
    assert [p["daysAhead"] for p in predictions] == [-30, -7, None, 20]

    summary = data["summary"]
    assert summary == {
        "total": 4, "onTrack": 1, "atRisk": 1, "likelyDelayed": 1, "noTarget": 1, "skipped": 0,
    }


def test_predictions_velocity_from_stored_phase_history(client, frozen_clock):
    company = _make_company()
    de = _make_de(
        company.id, current_journey_phase="kickoff",
        go_live_date=(NOW + timedelta(days=365)).date(),
    )
    _make_phase(
        de.id, "sales_handover", 1, status="complete",
        started_at=NOW - timedelta(days=14), completed_at=NOW - timedelta(days=7),
        planned_duration_days=5,
    )
    _make_phase(
        de.id, "kickoff", 2, status="in_progress",
        started_at=NOW - timedelta(days=7), planned_duration_days=2,
    )
    _db.session.commit()

    p = _get_predictions(client)["predictions"][0]

    assert p["velocityRatio"] == pytest.approx(5 / 7)
    assert p["completedPhases"] == 1
    assert p["progressPct"] == 12
    assert p["riskStatus"] == "on_track"
    # 61 remaining planned days at 5/7 velocity from the kickoff start.
    expected = NOW - timedelta(days=7) + timedelta(days=61 * 7 / 5)
    predicted = datetime.fromisoformat(p["predictedGoLive"])
    if predicted.tzinfo is None:
        predicted = predicted.replace(tzinfo=timezone.utc)
    assert abs(predicted - expected) < timedelta(seconds=1)


def test_predictions_malformed_engagement_reported_as_skipped(client, frozen_clock):
    company = _make_company()
    good = _make_de(company.id, name="Healthy")
    broken = _make_de(company.id, name="Broken")
    # complete without a completion timestamp
    _make_phase(broken.id, "sales_handover", 1, status="complete", started_at=NOW)
    _db.session.commit()

    data = _get_predictions(client)

    assert [p["engagementId"] for p in data["predictions"]] == [good.id]
    assert data["summary"]["total"] == 1
    assert data["summary"]["skipped"] == 1
    assert data["skipped"][0]["engagementId"] == broken.id
    assert "completed_at" in data["skipped"][0]["reason"]


def test_predictions_data_source_failure_returns_500_envelope(client, frozen_clock):
    company = _make_company()
    _make_de(company.id)
    _db.session.commit()
    _db.drop_all()

    res = client.get(PREDICTIONS_URL)

    assert res.status_code == 500
    body = res.get_json()
    assert body["success"] is False
    assert body["error"] == "Failed to calculate deadline predictions"
    assert body["code"] == "ERR_DATA_SOURCE"
    assert "data" not in body


def test_predictions_unexpected_error_returns_same_failure_envelope(client, frozen_clock, monkeypatch):
    company = _make_company()
    _make_de(company.id)
    _db.session.commit()

    def _explode(**kwargs):
        raise OverflowError("date value out of range")

    monkeypatch.setattr(portfolio_service, "get_deadline_predictions", _explode)

    res = client.get(PREDICTIONS_URL)

    assert res.status_code == 500
    body = res.get_json()
    assert body["success"] is False
    assert body["error"] == "Failed to calculate deadline predictions"
    assert "data" not in body
    assert "predictions" not in body


def test_predictions_out_of_range_engagement_is_skipped(client, frozen_clock):
    company = _make_company()
    healthy = _make_de(company.id, name="Healthy")
    runaway = _make_de(company.id, name="Runaway", current_journey_phase="kickoff")
    _make_phase(runaway.id, "kickoff", 2, status="in_progress", planned_duration_days=1e7)
    _db.session.commit()

    data = _get_predictions(client)

    assert [p["engagementId"] for p in data["predictions"]] == [healthy.id]
    assert data["skipped"] == [
        {"engagementId": runaway.id, "reason": "projected go-live out of range"},
    ]


def test_load_active_engagements_wraps_database_errors():
    _db.drop_all()

    with pytest.raises(DataSourceError):
        portfolio_service.load_active_engagements()


def test_load_active_engagements_returns_snapshots():
    company = _make_company()
    de = _make_de(company.id, go_live_date=date(2026, 6, 30))
    _make_prereq(de.id, status="blocked")
    _db.session.commit()

    snapshots = portfolio_service.load_active_engagements()

    assert len(snapshots) == 1
    snap = snapshots[0]
    assert snap["id"] == de.id
    assert snap["company_name"] == "Acme Insurance"
    assert snap["current_phase_key"] == "design_week"
    assert snap["target_go_live_date"] == date(2026, 6, 30)
    assert snap["phases"] == []
    assert snap["prerequisites"] == [{"status": "blocked", "blocks_phase": None}]


# ═══════════════════════════════════════════════════════════════════════════
# GET /portfolio/phases
# ═══════════════════════════════════════════════════════════════════════════


def test_phases_endpoint_returns_pipeline(client):
    res = client.get("/api/v1/portfolio/phases")

    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["total"] == 8
    assert data["phases"][0]["key"] == "sales_handover"
    assert data["phases"][-1]["key"] == "handover_to_support"
    assert sum(p["defaultPlannedDurationDays"] for p in data["phases"]) == 66


# ═══════════════════════════════════════════════════════════════════════════
# Health & error envelope
# ═══════════════════════════════════════════════════════════════════════════


def test_health_ready(client):
    res = client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.get_json() == {"status": "ok"}


def test_health_live_reports_database_and_pipeline(client):
    res = client.get("/api/v1/health/live")
    assert res.status_code == 200
    body = res.get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["status"] == "ok"
    assert body["checks"]["pipeline"]["phases"] == 8


def test_unknown_route_returns_json_404(client):
    res = client.get("/api/v1/portfolio/unknown")
    assert res.status_code == 404
    body = res.get_json()
    assert body["success"] is False
    assert body["code"] == "ERR_NOT_FOUND"


def test_wrong_method_returns_json_405(client):
    res = client.post(PREDICTIONS_URL)
    assert res.status_code == 405
    assert res.get_json()["code"] == "ERR_METHOD_NOT_ALLOWED"

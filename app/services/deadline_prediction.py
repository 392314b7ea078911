"""
Digital Employee Onboarding Tracker
Deadline Prediction Engine — portfolio go-live forecasting.

Given a snapshot of in-flight engagements, produces one prediction per engagement:
  - Velocity ratio (planned ÷ actual days) from the engagement's completed phases
  - Blocker count from the active phase's prerequisites
  - Predicted go-live: anchor + remaining planned days ÷ velocity (calendar days)
  - Risk status and signed days-ahead against the committed target date
and a risk-ranked portfolio view with per-status tallies.

Architecture:
  Pure and synchronous.  The engine performs no I/O and keeps no state between
  calls; the only time dependency is the single "now" read from the injected
  clock, used as projection anchor when the active phase has no start timestamp.
  Each engagement is forecast independently — there is no cross-engagement
  calibration, so the portfolio can be mapped in any order or in parallel.

Failure handling:
  A malformed engagement (unparseable timestamp, negative duration, broken
  status/timestamp invariant, unknown current phase) raises
  MalformedEngagementError inside its own prediction.  The assembler excludes it
  and reports it under ``skipped``; the rest of the portfolio proceeds.
  Phase records with an unknown phase key are ignored with a warning.

Usage:
    from app.services.deadline_prediction import assemble_portfolio
    forecast = assemble_portfolio(engagements, clock=lambda: now)
    forecast.to_dict()   # -> {"predictions": [...], "summary": {...}, "skipped": [...]}
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum

from app.core.exceptions import MalformedEngagementError
from app.services import phase_pipeline
from app.services.phase_pipeline import PIPELINE_LENGTH, PhaseDefinition

logger = logging.getLogger(__name__)


AT_RISK_WINDOW_DAYS = 14
DEFAULT_VELOCITY = 1.0
MIN_ACTUAL_DURATION_DAYS = 1


# ═════════════════════════════════════════════════════════════════════════════
# Enums
# ═════════════════════════════════════════════════════════════════════════════


class PhaseStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    SKIPPED = "skipped"


class PrerequisiteStatus(str, Enum):
    PENDING = "pending"
    REQUESTED = "requested"
    IN_PROGRESS = "in_progress"
    RECEIVED = "received"
    BLOCKED = "blocked"
    NOT_NEEDED = "not_needed"


class RiskStatus(str, Enum):
    """Schedule risk of an engagement against its committed go-live date."""
    NO_TARGET = "no_target"
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    LIKELY_DELAYED = "likely_delayed"


_DONE_STATUSES = frozenset({PhaseStatus.COMPLETE, PhaseStatus.SKIPPED})

# Most urgent first.
_RISK_RANK: dict[RiskStatus, int] = {
    RiskStatus.LIKELY_DELAYED: 0,
    RiskStatus.AT_RISK: 1,
    RiskStatus.NO_TARGET: 2,
    RiskStatus.ON_TRACK: 3,
}


# ═════════════════════════════════════════════════════════════════════════════
# Parsing helpers
# ═════════════════════════════════════════════════════════════════════════════


def _as_utc(dt: datetime) -> datetime:
    """Normalise a datetime to UTC-aware; naive values are taken to be UTC already.

    SQLite returns naive datetimes, PostgreSQL tz-aware ones.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_timestamp(value, field_name: str, engagement_id) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return _as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            pass
    raise MalformedEngagementError(engagement_id, f"unparseable {field_name}: {value!r}")


def _parse_date(value, field_name: str, engagement_id) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
        try:
            return _as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00"))).date()
        except ValueError:
            pass
    raise MalformedEngagementError(engagement_id, f"unparseable {field_name}: {value!r}")


def _parse_duration(value, field_name: str, engagement_id) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise MalformedEngagementError(engagement_id, f"invalid {field_name}: {value!r}")
    try:
        days = float(value)
    except (TypeError, ValueError):
        raise MalformedEngagementError(engagement_id, f"invalid {field_name}: {value!r}") from None
    if not math.isfinite(days) or days < 0:
        raise MalformedEngagementError(engagement_id, f"negative or non-finite {field_name}: {value!r}")
    return days


def _parse_key(value, field_name: str, engagement_id) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise MalformedEngagementError(engagement_id, f"invalid {field_name}: {value!r}")


def _require_mapping(data, what: str, engagement_id) -> Mapping:
    if not isinstance(data, Mapping):
        raise MalformedEngagementError(
            engagement_id, f"{what}: expected a mapping, got {type(data).__name__}",
        )
    return data


def _parse_entries(value, field_name: str, engagement_id) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        raise MalformedEngagementError(engagement_id, f"{field_name}: expected a list")
    return tuple(value)


def _parse_enum(enum_cls, value, field_name: str, engagement_id):
    """Accept enum members and loose spellings: 'in-progress', 'IN_PROGRESS', 'In Progress'."""
    if isinstance(value, enum_cls):
        return value
    normalised = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return enum_cls(normalised)
    except ValueError:
        raise MalformedEngagementError(engagement_id, f"unknown {field_name}: {value!r}") from None


# ═════════════════════════════════════════════════════════════════════════════
# Input snapshot
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class PhaseRecord:
    """An engagement's observed progress through one pipeline phase."""
    phase_key: str
    status: PhaseStatus = PhaseStatus.NOT_STARTED
    order: int | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    planned_duration_days: float | None = None
    actual_duration_days: float | None = None

    @classmethod
    def from_mapping(cls, data: Mapping, engagement_id=None) -> PhaseRecord:
        data = _require_mapping(data, "phase record", engagement_id)
        return cls(
            phase_key=_parse_key(data.get("phase_key"), "phase_key", engagement_id),
            status=_parse_enum(PhaseStatus, data.get("status"), "phase status", engagement_id),
            order=data.get("order"),
            started_at=_parse_timestamp(data.get("started_at"), "started_at", engagement_id),
            completed_at=_parse_timestamp(data.get("completed_at"), "completed_at", engagement_id),
            planned_duration_days=_parse_duration(
                data.get("planned_duration_days"), "planned_duration_days", engagement_id,
            ),
            actual_duration_days=_parse_duration(
                data.get("actual_duration_days"), "actual_duration_days", engagement_id,
            ),
        )

    @property
    def is_done(self) -> bool:
        return self.status in _DONE_STATUSES


@dataclass(frozen=True)
class Prerequisite:
    """Gating item attached to the active phase. Only ``blocked`` counts as a blocker."""
    status: PrerequisiteStatus = PrerequisiteStatus.PENDING
    blocks_phase: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping, engagement_id=None) -> Prerequisite:
        data = _require_mapping(data, "prerequisite", engagement_id)
        return cls(
            status=_parse_enum(
                PrerequisiteStatus, data.get("status"), "prerequisite status", engagement_id,
            ),
            blocks_phase=_parse_key(data.get("blocks_phase"), "blocks_phase", engagement_id),
        )


@dataclass(frozen=True)
class Engagement:
    """Read-only snapshot of one Digital Employee engagement.

    ``current_phase_key`` may be None; the active phase is then derived from the
    records (first in-progress, then first not-started, then the pipeline start).
    """
    id: object
    name: str = ""
    company_name: str = ""
    current_phase_key: str | None = None
    target_go_live_date: date | None = None
    phases: tuple[PhaseRecord, ...] = ()
    prerequisites: tuple[Prerequisite, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping) -> Engagement:
        """Build a snapshot from plain data, raising MalformedEngagementError on bad values."""
        data = _require_mapping(data, "engagement", None)
        engagement_id = data.get("id")
        if engagement_id is None:
            raise MalformedEngagementError(None, "missing id")
        return cls(
            id=engagement_id,
            name=data.get("name") or "",
            company_name=data.get("company_name") or "",
            current_phase_key=_parse_key(
                data.get("current_phase_key"), "current_phase_key", engagement_id,
            ),
            target_go_live_date=_parse_date(
                data.get("target_go_live_date"), "target_go_live_date", engagement_id,
            ),
            phases=tuple(
                PhaseRecord.from_mapping(p, engagement_id)
                for p in _parse_entries(data.get("phases"), "phases", engagement_id)
            ),
            prerequisites=tuple(
                Prerequisite.from_mapping(p, engagement_id)
                for p in _parse_entries(data.get("prerequisites"), "prerequisites", engagement_id)
            ),
        )


# ═════════════════════════════════════════════════════════════════════════════
# Output
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class PredictionResult:
    engagement_id: object
    engagement_name: str
    company_name: str
    current_phase_key: str
    target_go_live_date: date | None
    predicted_go_live_date: datetime
    velocity_ratio: float
    blocker_count: int
    risk_status: RiskStatus
    days_ahead: int | None
    completed_phase_count: int
    total_phase_count: int = PIPELINE_LENGTH
    progress_pct: int = 0

    def to_dict(self) -> dict:
        return {
            "engagementId": self.engagement_id,
            "engagementName": self.engagement_name,
            "companyName": self.company_name,
            "currentPhaseKey": self.current_phase_key,
            "currentPhase": phase_pipeline.get_phase_label(self.current_phase_key),
            "targetGoLive": (
                self.target_go_live_date.isoformat() if self.target_go_live_date else None
            ),
            "predictedGoLive": self.predicted_go_live_date.isoformat(),
            "velocityRatio": self.velocity_ratio,
            "blockerCount": self.blocker_count,
            "riskStatus": self.risk_status.value,
            "daysAhead": self.days_ahead,
            "completedPhases": self.completed_phase_count,
            "totalPhases": self.total_phase_count,
            "progressPct": self.progress_pct,
        }


@dataclass(frozen=True)
class SkippedEngagement:
    engagement_id: object
    reason: str

    def to_dict(self) -> dict:
        return {"engagementId": self.engagement_id, "reason": self.reason}


@dataclass(frozen=True)
class PortfolioSummary:
    total: int = 0
    on_track: int = 0
    at_risk: int = 0
    likely_delayed: int = 0
    no_target: int = 0
    skipped: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "onTrack": self.on_track,
            "atRisk": self.at_risk,
            "likelyDelayed": self.likely_delayed,
            "noTarget": self.no_target,
            "skipped": self.skipped,
        }


@dataclass(frozen=True)
class PortfolioForecast:
    predictions: tuple[PredictionResult, ...] = ()
    summary: PortfolioSummary = field(default_factory=PortfolioSummary)
    skipped: tuple[SkippedEngagement, ...] = ()

    def to_dict(self) -> dict:
        return {
            "predictions": [p.to_dict() for p in self.predictions],
            "summary": self.summary.to_dict(),
            "skipped": [s.to_dict() for s in self.skipped],
        }


# ═════════════════════════════════════════════════════════════════════════════
# Validation
# ═════════════════════════════════════════════════════════════════════════════


def _validate_record(record: PhaseRecord, engagement_id) -> None:
    if (record.completed_at is not None) != (record.status is PhaseStatus.COMPLETE):
        raise MalformedEngagementError(
            engagement_id,
            f"phase {record.phase_key!r}: completed_at must be set exactly when status is complete",
        )
    if record.started_at and record.completed_at and record.completed_at < record.started_at:
        raise MalformedEngagementError(
            engagement_id, f"phase {record.phase_key!r}: completed_at precedes started_at",
        )
    for name in ("planned_duration_days", "actual_duration_days"):
        value = getattr(record, name)
        if value is not None and value < 0:
            raise MalformedEngagementError(engagement_id, f"phase {record.phase_key!r}: negative {name}")


def _known_records(engagement: Engagement) -> tuple[PhaseRecord, ...]:
    """Validate every record; drop (and log) records whose phase key is not in the pipeline."""
    known = []
    for record in engagement.phases:
        _validate_record(record, engagement.id)
        if phase_pipeline.get_phase(record.phase_key) is None:
            logger.warning(
                "Engagement %s: ignoring record for unknown phase %r",
                engagement.id, record.phase_key,
            )
            continue
        known.append(record)
    return tuple(known)


def _resolve_current_phase(engagement: Engagement, records: tuple[PhaseRecord, ...]) -> PhaseDefinition:
    key = engagement.current_phase_key
    if key is None:
        fallback = (
            next((r for r in records if r.status is PhaseStatus.IN_PROGRESS), None)
            or next((r for r in records if r.status is PhaseStatus.NOT_STARTED), None)
        )
        key = fallback.phase_key if fallback else phase_pipeline.FIRST_PHASE_KEY
    phase = phase_pipeline.get_phase(key)
    if phase is None:
        raise MalformedEngagementError(engagement.id, f"unknown current phase {key!r}")
    return phase


# ═════════════════════════════════════════════════════════════════════════════
# Velocity Estimator
# ═════════════════════════════════════════════════════════════════════════════


def _planned_days(record: PhaseRecord) -> float:
    if record.planned_duration_days is not None:
        return record.planned_duration_days
    phase = phase_pipeline.get_phase(record.phase_key)
    return phase.default_planned_duration_days if phase else 0.0


def _actual_days(record: PhaseRecord) -> float | None:
    """Measured duration of a completed phase; None when it cannot be measured.

    Derived durations count whole calendar days with a floor of one day, so a
    phase opened and closed on the same day still registers as a day of effort.
    """
    if record.actual_duration_days is not None:
        return record.actual_duration_days
    if record.started_at is None or record.completed_at is None:
        return None
    elapsed = (record.completed_at.date() - record.started_at.date()).days
    return max(MIN_ACTUAL_DURATION_DAYS, elapsed)


def estimate_velocity(records: Iterable[PhaseRecord]) -> float:
    """Return planned ÷ actual days over completed phases; 1.0 when nothing is measurable.

    > 1 means phases close faster than planned, < 1 slower.  Always > 0.
    """
    planned_sum = 0.0
    actual_sum = 0.0
    for record in records:
        if record.status is not PhaseStatus.COMPLETE:
            continue
        actual = _actual_days(record)
        if not actual:
            continue
        planned_sum += _planned_days(record)
        actual_sum += actual

    if actual_sum <= 0 or planned_sum <= 0:
        return DEFAULT_VELOCITY
    ratio = planned_sum / actual_sum
    return ratio if math.isfinite(ratio) and ratio > 0 else DEFAULT_VELOCITY


# ═════════════════════════════════════════════════════════════════════════════
# Blocker Aggregator
# ═════════════════════════════════════════════════════════════════════════════


def count_blockers(prerequisites: Iterable[Prerequisite]) -> int:
    # TODO: filter on blocks_phase == current phase once phase-specific gating is required.
    return sum(1 for p in prerequisites if p.status is PrerequisiteStatus.BLOCKED)


# ═════════════════════════════════════════════════════════════════════════════
# Go-Live Projector
# ═════════════════════════════════════════════════════════════════════════════


def remaining_planned_days(records: Iterable[PhaseRecord], current: PhaseDefinition) -> float:
    """Planned days for every pipeline phase from ``current`` onwards that is not done yet."""
    by_key = {r.phase_key: r for r in records}
    total = 0.0
    for phase in phase_pipeline.phases_from(current.key):
        record = by_key.get(phase.key)
        if record is None:
            total += phase.default_planned_duration_days
        elif not record.is_done:
            total += _planned_days(record)
    return total


def _anchor(records: tuple[PhaseRecord, ...], current: PhaseDefinition, now: datetime) -> datetime:
    active = next((r for r in records if r.phase_key == current.key), None)
    if active is None:
        active = next((r for r in records if r.status is PhaseStatus.IN_PROGRESS), None)
    if active is not None and active.started_at is not None:
        return _as_utc(active.started_at)
    return now


def project_go_live(
    records: tuple[PhaseRecord, ...],
    current: PhaseDefinition,
    velocity_ratio: float,
    now: datetime,
) -> datetime:
    """Predicted completion: anchor + remaining planned days ÷ velocity, in calendar days.

    Blockers are deliberately not modelled here; they are reported next to the
    prediction through ``blocker_count``.
    """
    projected_days = remaining_planned_days(records, current) / velocity_ratio
    return _anchor(records, current, now) + timedelta(days=projected_days)


# ═════════════════════════════════════════════════════════════════════════════
# Risk Classifier
# ═════════════════════════════════════════════════════════════════════════════


def classify_risk(
    target: date | None,
    predicted: datetime,
    *,
    at_risk_days: int = AT_RISK_WINDOW_DAYS,
) -> tuple[RiskStatus, int | None]:
    """Return (risk status, days ahead). Days ahead is None when there is no target.

    Positive days ahead means the prediction lands before the target.
    """
    if target is None:
        return RiskStatus.NO_TARGET, None

    days_ahead = (target - predicted.date()).days
    if days_ahead >= 0:
        return RiskStatus.ON_TRACK, days_ahead
    if days_ahead >= -at_risk_days:
        return RiskStatus.AT_RISK, days_ahead
    return RiskStatus.LIKELY_DELAYED, days_ahead


# ═════════════════════════════════════════════════════════════════════════════
# Portfolio Assembler
# ═════════════════════════════════════════════════════════════════════════════


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def predict_engagement(
    engagement: Engagement,
    now: datetime,
    *,
    at_risk_days: int = AT_RISK_WINDOW_DAYS,
) -> PredictionResult:
    """Forecast a single engagement. Raises MalformedEngagementError on bad data."""
    records = _known_records(engagement)
    current = _resolve_current_phase(engagement, records)

    velocity = estimate_velocity(records)
    try:
        predicted = project_go_live(records, current, velocity, _as_utc(now))
    except (OverflowError, ValueError):
        raise MalformedEngagementError(engagement.id, "projected go-live out of range") from None
    risk, days_ahead = classify_risk(
        engagement.target_go_live_date, predicted, at_risk_days=at_risk_days,
    )
    done_keys = {r.phase_key for r in records if r.is_done}

    return PredictionResult(
        engagement_id=engagement.id,
        engagement_name=engagement.name,
        company_name=engagement.company_name,
        current_phase_key=current.key,
        target_go_live_date=engagement.target_go_live_date,
        predicted_go_live_date=predicted,
        velocity_ratio=velocity,
        blocker_count=count_blockers(engagement.prerequisites),
        risk_status=risk,
        days_ahead=days_ahead,
        completed_phase_count=len(done_keys),
        progress_pct=phase_pipeline.journey_progress_pct(done_keys),
    )


def summarize(predictions: Iterable[PredictionResult], skipped: int = 0) -> PortfolioSummary:
    counts = {status: 0 for status in RiskStatus}
    total = 0
    for prediction in predictions:
        counts[prediction.risk_status] += 1
        total += 1
    return PortfolioSummary(
        total=total,
        on_track=counts[RiskStatus.ON_TRACK],
        at_risk=counts[RiskStatus.AT_RISK],
        likely_delayed=counts[RiskStatus.LIKELY_DELAYED],
        no_target=counts[RiskStatus.NO_TARGET],
        skipped=skipped,
    )


def assemble_portfolio(
    engagements: Iterable[Engagement | Mapping],
    *,
    clock: Callable[[], datetime] = utcnow,
    at_risk_days: int = AT_RISK_WINDOW_DAYS,
) -> PortfolioForecast:
    """Forecast every engagement, rank by urgency and tally per risk status.

    Args:
        engagements: Engagement snapshots or plain mappings in the
                     ``Engagement.from_mapping`` shape.
        clock: Time source, read exactly once per call.
        at_risk_days: Slip window (days past target) still classed as at_risk.

    Returns:
        PortfolioForecast sorted likely_delayed → at_risk → no_target → on_track,
        ties broken by the earlier predicted go-live.
    """
    now = _as_utc(clock())
    predictions: list[PredictionResult] = []
    skipped: list[SkippedEngagement] = []

    for item in engagements:
        try:
            engagement = item if isinstance(item, Engagement) else Engagement.from_mapping(item)
            predictions.append(predict_engagement(engagement, now, at_risk_days=at_risk_days))
        except MalformedEngagementError as exc:
            logger.warning("Skipping engagement %s: %s", exc.engagement_id, exc.reason)
            skipped.append(SkippedEngagement(exc.engagement_id, exc.reason))

    predictions.sort(key=lambda p: (_RISK_RANK[p.risk_status], p.predicted_go_live_date))

    return PortfolioForecast(
        predictions=tuple(predictions),
        summary=summarize(predictions, skipped=len(skipped)),
        skipped=tuple(skipped),
    )

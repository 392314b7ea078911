"""
Digital Employee Onboarding Tracker
Phase Pipeline — canonical 8-phase delivery journey.

Reference data only: the ordered phase table is built once at import time and
never mutated.  Engagement history is sparse (not every phase has a record yet),
so this table — not the engagement — is the source of truth for phase order,
the pipeline length and the default planned duration of each phase.

Usage:
    from app.services.phase_pipeline import PIPELINE, get_phase
    phase = get_phase("design_week")   # -> PhaseDefinition | None
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class PhaseDefinition:
    """One stage of the canonical delivery pipeline."""
    key: str
    order: int
    default_planned_duration_days: int
    label: str
    short_label: str
    description: str

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "order": self.order,
            "defaultPlannedDurationDays": self.default_planned_duration_days,
            "label": self.label,
            "shortLabel": self.short_label,
            "description": self.description,
        }


PIPELINE: tuple[PhaseDefinition, ...] = (
    PhaseDefinition(
        "sales_handover", 1, 5, "Sales Handover", "Handover",
        "Internal handover from sales to implementation team",
    ),
    PhaseDefinition(
        "kickoff", 2, 2, "Kickoff", "Kickoff",
        "Initial customer meeting to align on goals and timeline",
    ),
    PhaseDefinition(
        "design_week", 3, 10, "Design Week", "Design",
        "Design sessions that define scope and requirements",
    ),
    PhaseDefinition(
        "onboarding", 4, 20, "Onboarding", "Onboard",
        "Build and deployment phase",
    ),
    PhaseDefinition(
        "uat", 5, 10, "UAT", "UAT",
        "User Acceptance Testing",
    ),
    PhaseDefinition(
        "go_live", 6, 2, "Go Live", "Go Live",
        "First day of the digital employee in production",
    ),
    PhaseDefinition(
        "hypercare", 7, 14, "Hypercare", "Hypercare",
        "Intensive support period after go-live",
    ),
    PhaseDefinition(
        "handover_to_support", 8, 3, "Handover to Support", "Support",
        "Transition to BAU support",
    ),
)

PIPELINE_LENGTH = len(PIPELINE)
FIRST_PHASE_KEY = PIPELINE[0].key

_BY_KEY = MappingProxyType({p.key: p for p in PIPELINE})


def get_phase(key: str | None) -> PhaseDefinition | None:
    """Return the phase for a key, or None when the key is not part of the pipeline."""
    if not isinstance(key, str):
        return None
    return _BY_KEY.get(key)


def get_phase_label(key: str) -> str:
    phase = get_phase(key)
    return phase.label if phase else key


def phases_from(key: str) -> tuple[PhaseDefinition, ...]:
    """All phases at or after ``key`` in pipeline order (empty for an unknown key)."""
    phase = get_phase(key)
    if phase is None:
        return ()
    return PIPELINE[phase.order - 1:]


def journey_progress_pct(completed_keys) -> int:
    """Percentage of the pipeline completed, always relative to the full pipeline length."""
    keys = set(completed_keys)
    done = sum(1 for p in PIPELINE if p.key in keys)
    return round(done / PIPELINE_LENGTH * 100)

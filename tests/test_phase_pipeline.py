"""
Tests: Phase Pipeline reference data.

The pipeline is the fixed 8-phase journey every engagement is measured against,
independent of how many phase records an engagement carries.
"""

import dataclasses

import pytest

from app.services import phase_pipeline
from app.services.phase_pipeline import PIPELINE, PIPELINE_LENGTH


def test_pipeline_has_eight_phases_in_order():
    assert PIPELINE_LENGTH == 8
    assert [p.order for p in PIPELINE] == list(range(1, 9))
    assert [p.key for p in PIPELINE] == [
        "sales_handover",
        "kickoff",
        "design_week",
        "onboarding",
        "uat",
        "go_live",
        "hypercare",
        "handover_to_support",
    ]


def test_default_durations_are_positive():
    assert all(p.default_planned_duration_days > 0 for p in PIPELINE)
    assert sum(p.default_planned_duration_days for p in PIPELINE) == 66


def test_phase_definitions_are_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        PIPELINE[0].default_planned_duration_days = 99


def test_get_phase_by_key():
    design = phase_pipeline.get_phase("design_week")
    assert design.order == 3
    assert design.default_planned_duration_days == 10


def test_unknown_phase_key_returns_none():
    assert phase_pipeline.get_phase("discovery") is None
    assert phase_pipeline.get_phase(None) is None
    assert phase_pipeline.get_phase(["design_week"]) is None
    assert phase_pipeline.phases_from("discovery") == ()


def test_labels_fall_back_to_key():
    assert phase_pipeline.get_phase_label("uat") == "UAT"
    assert phase_pipeline.get_phase_label("handover_to_support") == "Handover to Support"
    assert phase_pipeline.get_phase_label("mystery") == "mystery"


def test_phases_from_includes_the_starting_phase():
    keys = [p.key for p in phase_pipeline.phases_from("go_live")]
    assert keys == ["go_live", "hypercare", "handover_to_support"]


def test_journey_progress_is_relative_to_full_pipeline():
    assert phase_pipeline.journey_progress_pct([]) == 0
    assert phase_pipeline.journey_progress_pct(["sales_handover", "kickoff"]) == 25
    # Unknown keys never inflate progress.
    assert phase_pipeline.journey_progress_pct(["sales_handover", "bogus"]) == 12


def test_to_dict_uses_api_field_names():
    d = phase_pipeline.get_phase("onboarding").to_dict()
    assert d == {
        "key": "onboarding",
        "order": 4,
        "defaultPlannedDurationDays": 20,
        "label": "Onboarding",
        "shortLabel": "Onboard",
        "description": "Build and deployment phase",
    }

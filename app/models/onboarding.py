"""
Digital Employee Onboarding Tracker
Onboarding domain models.

Models:
    - Company: customer organisation that owns one or more Digital Employees
    - DigitalEmployee: one implementation engagement tracked through the journey
    - JourneyPhase: observed progress of an engagement through one pipeline phase
    - Prerequisite: gating item (credentials, data access, sign-off) for the active phase

The deadline-prediction engine never touches these classes directly — it reads the
plain-data snapshot returned by ``DigitalEmployee.to_prediction_input()``.
"""

from datetime import datetime, timezone

from app.models import db


def _iso(value):
    return value.isoformat() if value else None


# ── Company ──────────────────────────────────────────────────────────────────


class Company(db.Model):
    """Customer organisation."""

    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    industry = db.Column(db.String(100), default="")

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    digital_employees = db.relationship(
        "DigitalEmployee", backref="company", lazy="dynamic",
        cascade="all, delete-orphan", order_by="DigitalEmployee.name",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "industry": self.industry,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Company {self.id}: {self.name}>"


# ── Digital Employee ─────────────────────────────────────────────────────────


class DigitalEmployee(db.Model):
    """
    A Digital Employee implementation engagement.
    Only engagements in an active status are forecast by the portfolio view.
    """

    __tablename__ = "digital_employees"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(
        db.String(30),
        default="design",
        index=True,
        comment="design | onboarding | live | paused | cancelled",
    )
    current_journey_phase = db.Column(
        db.String(40),
        default="sales_handover",
        comment="Pipeline phase key — see app.services.phase_pipeline",
    )
    go_live_date = db.Column(db.Date, nullable=True, comment="Committed target go-live")

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ────────────────────────────────────────────────────
    journey_phases = db.relationship(
        "JourneyPhase", backref="digital_employee", lazy="select",
        cascade="all, delete-orphan", order_by="JourneyPhase.order",
    )
    prerequisites = db.relationship(
        "Prerequisite", backref="digital_employee", lazy="select",
        cascade="all, delete-orphan", order_by="Prerequisite.id",
    )

    def to_dict(self, include_children=False):
        """Serialize the engagement to a dictionary."""
        result = {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "current_journey_phase": self.current_journey_phase,
            "go_live_date": _iso(self.go_live_date),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_children:
            result["journey_phases"] = [p.to_dict() for p in self.journey_phases]
            result["prerequisites"] = [p.to_dict() for p in self.prerequisites]
        return result

    def to_prediction_input(self):
        """Return the plain-data engagement snapshot consumed by the prediction engine.

        Keys follow the engine's mapping contract (see
        ``app.services.deadline_prediction.Engagement.from_mapping``).
        """
        return {
            "id": self.id,
            "name": self.name,
            "company_name": self.company.name if self.company else "",
            "current_phase_key": self.current_journey_phase,
            "target_go_live_date": self.go_live_date,
            "phases": [
                {
                    "phase_key": p.phase_type,
                    "order": p.order,
                    "status": p.status,
                    "started_at": p.started_at,
                    "completed_at": p.completed_at,
                    "planned_duration_days": p.planned_duration_days,
                    "actual_duration_days": p.actual_duration_days,
                }
                for p in self.journey_phases
            ],
            "prerequisites": [
                {"status": p.status, "blocks_phase": p.blocks_phase}
                for p in self.prerequisites
            ],
        }

    def __repr__(self):
        return f"<DigitalEmployee {self.id}: {self.name}>"


# ── Journey Phase ────────────────────────────────────────────────────────────


class JourneyPhase(db.Model):
    """Observed progress of one engagement through one pipeline phase."""

    __tablename__ = "journey_phases"
    __table_args__ = (
        db.UniqueConstraint("digital_employee_id", "phase_type", name="uq_journey_phase_de_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    digital_employee_id = db.Column(
        db.Integer, db.ForeignKey("digital_employees.id", ondelete="CASCADE"), nullable=False
    )
    phase_type = db.Column(db.String(40), nullable=False)
    order = db.Column(db.Integer, default=0, comment="Position in the pipeline (1..8)")
    status = db.Column(
        db.String(30),
        default="not_started",
        comment="not_started | in_progress | complete | skipped",
    )
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    planned_duration_days = db.Column(
        db.Float, nullable=True, comment="Overrides the pipeline default when set"
    )
    actual_duration_days = db.Column(db.Float, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "digital_employee_id": self.digital_employee_id,
            "phase_type": self.phase_type,
            "order": self.order,
            "status": self.status,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "planned_duration_days": self.planned_duration_days,
            "actual_duration_days": self.actual_duration_days,
        }

    def __repr__(self):
        return f"<JourneyPhase {self.id}: {self.phase_type} ({self.status})>"


# ── Prerequisite ─────────────────────────────────────────────────────────────


class Prerequisite(db.Model):
    """Gating item attached to an engagement's active phase."""

    __tablename__ = "prerequisites"

    id = db.Column(db.Integer, primary_key=True)
    digital_employee_id = db.Column(
        db.Integer, db.ForeignKey("digital_employees.id", ondelete="CASCADE"), nullable=False
    )
    title = db.Column(db.String(200), nullable=False)
    status = db.Column(
        db.String(30),
        default="pending",
        comment="pending | requested | in_progress | received | blocked | not_needed",
    )
    blocks_phase = db.Column(db.String(40), nullable=True, comment="Pipeline phase key")

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "digital_employee_id": self.digital_employee_id,
            "title": self.title,
            "status": self.status,
            "blocks_phase": self.blocks_phase,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Prerequisite {self.id}: {self.title} ({self.status})>"

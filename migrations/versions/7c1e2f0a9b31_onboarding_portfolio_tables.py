"""onboarding_portfolio_tables

Creates the onboarding tables read by the portfolio predictions view:
  - companies          — customer organisations
  - digital_employees  — implementation engagements (status, current phase, go-live)
  - journey_phases     — per-engagement progress through the 8-phase pipeline
  - prerequisites      — gating items for the active phase

Tables created conditionally (IF NOT EXISTS semantics) so the revision is safe
against databases that already received them via db.create_all() in development.

Revision ID: 7c1e2f0a9b31
Revises:
Create Date: 2026-02-16 10:39:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '7c1e2f0a9b31'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Companies ─────────────────────────────────────────────────────────
    if "companies" not in existing:
        op.create_table(
            "companies",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("industry", sa.String(length=100), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    # ── Digital Employees ─────────────────────────────────────────────────
    if "digital_employees" not in existing:
        op.create_table(
            "digital_employees",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=True,
                      comment="design | onboarding | live | paused | cancelled"),
            sa.Column("current_journey_phase", sa.String(length=40), nullable=True,
                      comment="Pipeline phase key — see app.services.phase_pipeline"),
            sa.Column("go_live_date", sa.Date(), nullable=True,
                      comment="Committed target go-live"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_digital_employees_status", "digital_employees", ["status"])

    # ── Journey Phases ────────────────────────────────────────────────────
    if "journey_phases" not in existing:
        op.create_table(
            "journey_phases",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("digital_employee_id", sa.Integer(), nullable=False),
            sa.Column("phase_type", sa.String(length=40), nullable=False),
            sa.Column("order", sa.Integer(), nullable=True,
                      comment="Position in the pipeline (1..8)"),
            sa.Column("status", sa.String(length=30), nullable=True,
                      comment="not_started | in_progress | complete | skipped"),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("planned_duration_days", sa.Float(), nullable=True,
                      comment="Overrides the pipeline default when set"),
            sa.Column("actual_duration_days", sa.Float(), nullable=True),
            sa.ForeignKeyConstraint(["digital_employee_id"], ["digital_employees.id"],
                                    ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("digital_employee_id", "phase_type",
                                name="uq_journey_phase_de_type"),
        )

    # ── Prerequisites ─────────────────────────────────────────────────────
    if "prerequisites" not in existing:
        op.create_table(
            "prerequisites",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("digital_employee_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("status", sa.String(length=30), nullable=True,
                      comment="pending | requested | in_progress | received | blocked | not_needed"),
            sa.Column("blocks_phase", sa.String(length=40), nullable=True,
                      comment="Pipeline phase key"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["digital_employee_id"], ["digital_employees.id"],
                                    ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )


def downgrade():
    op.drop_table("prerequisites")
    op.drop_table("journey_phases")
    op.drop_index("ix_digital_employees_status", table_name="digital_employees")
    op.drop_table("digital_employees")
    op.drop_table("companies")

"""
001 — Initial schema: risk_profiles + risk_metrics

Revision ID: 001
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS sentinel_risk")

    op.create_table(
        "risk_profiles",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("organization_id", sa.Uuid, nullable=False),
        sa.Column("customer_id", sa.String(100), nullable=False),
        sa.Column("profile_type", sa.String(20), nullable=False),

        sa.Column("risk_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("risk_category", sa.String(20), nullable=False),

        sa.Column("pd_score", sa.Numeric(8, 6), nullable=True),
        sa.Column("lgd_score", sa.Numeric(8, 6), nullable=True),
        sa.Column("ead_amount", sa.Numeric(18, 2), nullable=True),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        sa.UniqueConstraint("organization_id", "customer_id", name="uq_risk_profiles_org_customer"),
        sa.CheckConstraint("risk_score >= 0 AND risk_score <= 100", name="ck_risk_profiles_score_range"),
        schema="sentinel_risk",
    )
    op.create_index(
        "ix_risk_profiles_organization_id", "risk_profiles", ["organization_id"],
        schema="sentinel_risk",
    )
    op.create_index(
        "ix_risk_profiles_org_score", "risk_profiles", ["organization_id", "risk_score"],
        schema="sentinel_risk",
    )

    op.create_table(
        "risk_metrics",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("organization_id", sa.Uuid, nullable=False),
        sa.Column("metric_type", sa.String(50), nullable=False),
        sa.Column("metric_value", sa.Numeric(18, 6), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("confidence_level", sa.Numeric(6, 4), nullable=True),
        sa.Column("time_horizon", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        schema="sentinel_risk",
    )
    op.create_index(
        "ix_risk_metrics_org_type_time", "risk_metrics", ["organization_id", "metric_type", "time"],
        schema="sentinel_risk",
    )


def downgrade() -> None:
    op.drop_table("risk_metrics", schema="sentinel_risk")
    op.drop_table("risk_profiles", schema="sentinel_risk")

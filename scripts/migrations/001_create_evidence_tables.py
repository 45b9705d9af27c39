"""create evidence, evidence_challenges and evidence_ip_bans tables

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "evidence",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True, index=True),
        sa.Column(
            "status",
            sa.Enum("submitted", "reviewed", "deleted", name="evidencestatus"),
            default="submitted",
            nullable=False,
            index=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "evidence_challenges",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("answer", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )
    op.create_table(
        "evidence_ip_bans",
        sa.Column("ip_address", sa.String(64), primary_key=True),
        sa.Column("reason", sa.String(200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("evidence_ip_bans")
    op.drop_table("evidence_challenges")
    op.drop_table("evidence")
    op.execute("DROP TYPE IF EXISTS evidencestatus")

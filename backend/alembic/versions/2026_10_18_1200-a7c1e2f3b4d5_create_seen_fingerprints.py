"""Create seen_fingerprints table

Revision ID: a7c1e2f3b4d5
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "a7c1e2f3b4d5"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = set(inspector.get_table_names())

    if "seen_fingerprints" in tables:
        return

    op.create_table(
        "seen_fingerprints",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("player_id", sa.String(64), nullable=False),
        sa.Column("fingerprint", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint("player_id", "fingerprint", name="uq_seen_fingerprints_player_fp"),
    )
    op.create_index("ix_seen_fingerprints_id", "seen_fingerprints", ["id"], unique=False)
    op.create_index("ix_seen_fingerprints_player_id", "seen_fingerprints", ["player_id"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = set(inspector.get_table_names())
    if "seen_fingerprints" not in tables:
        return

    op.drop_index("ix_seen_fingerprints_player_id", table_name="seen_fingerprints")
    op.drop_index("ix_seen_fingerprints_id", table_name="seen_fingerprints")
    op.drop_table("seen_fingerprints")

"""bracket participants, history and matches

Revision ID: 0002_bracket
Revises: 0001_initial
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_bracket"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "bracket_participants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), sa.ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("team_id", sa.Integer(), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("team_name", sa.String(length=120), nullable=False),
        sa.Column("seed_position", sa.Integer(), nullable=False),
        sa.Column("round", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("stage", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="incomplete"),
        sa.Column("is_eliminated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("next_match_slot_id", sa.String(length=10), nullable=True),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("tournament_id", "seed_position", name="uq_bracket_tournament_seed"),
        sa.UniqueConstraint("tournament_id", "team_id", name="uq_bracket_tournament_team"),
    )
    op.create_index("ix_bracket_participants_tournament_id", "bracket_participants", ["tournament_id"], unique=False)
    op.create_index("ix_bracket_participants_team_id", "bracket_participants", ["team_id"], unique=False)
    op.create_index("ix_bracket_participants_stage", "bracket_participants", ["stage"], unique=False)

    op.create_table(
        "bracket_match_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "participant_id",
            sa.Integer(),
            sa.ForeignKey("bracket_participants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("round", sa.Integer(), nullable=False),
        sa.Column("stage", sa.String(length=20), nullable=False),
        sa.Column(
            "opponent_participant_id",
            sa.Integer(),
            sa.ForeignKey("bracket_participants.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("opponent_seed_position", sa.Integer(), nullable=False),
        sa.Column("seed_position", sa.Integer(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("opponent_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("won", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_bracket_match_history_participant_id", "bracket_match_history", ["participant_id"], unique=False)

    op.create_table(
        "bracket_matches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), sa.ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("round", sa.Integer(), nullable=False),
        sa.Column("round_type", sa.String(length=20), nullable=False),
        sa.Column("slot_id", sa.String(length=10), nullable=False),
        sa.Column("home_team_id", sa.Integer(), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("away_team_id", sa.Integer(), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="unscheduled"),
        sa.Column("home_score", sa.Integer(), nullable=True),
        sa.Column("away_score", sa.Integer(), nullable=True),
        sa.UniqueConstraint("tournament_id", "slot_id", name="uq_bracket_match_slot"),
    )
    op.create_index("ix_bracket_matches_tournament_id", "bracket_matches", ["tournament_id"], unique=False)
    op.create_index("ix_bracket_matches_round_type", "bracket_matches", ["round_type"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_bracket_matches_round_type", table_name="bracket_matches")
    op.drop_index("ix_bracket_matches_tournament_id", table_name="bracket_matches")
    op.drop_table("bracket_matches")

    op.drop_index("ix_bracket_match_history_participant_id", table_name="bracket_match_history")
    op.drop_table("bracket_match_history")

    op.drop_index("ix_bracket_participants_stage", table_name="bracket_participants")
    op.drop_index("ix_bracket_participants_team_id", table_name="bracket_participants")
    op.drop_index("ix_bracket_participants_tournament_id", table_name="bracket_participants")
    op.drop_table("bracket_participants")

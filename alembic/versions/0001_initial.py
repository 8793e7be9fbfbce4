"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-05
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Создаем таблицу турниров.
    op.create_table(
        "tournaments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("number_of_rounds", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="in progress"),
        sa.Column("progress", sa.String(length=20), nullable=False, server_default="Not Started"),
        sa.Column("bracket_size", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    # Создаем таблицу команд со статистикой регулярного сезона.
    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), sa.ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("team_name", sa.String(length=120), nullable=False),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ties", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("goals_for", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("goals_against", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("tournament_id", "team_name", name="uq_tournament_team_name"),
    )
    op.create_index("ix_teams_tournament_id", "teams", ["tournament_id"], unique=False)

    # Создаем календарь матчей.
    op.create_table(
        "scheduled_matches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), sa.ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("round", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("kind", sa.String(length=20), nullable=False, server_default="league"),
        sa.Column("home_team_id", sa.Integer(), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("away_team_id", sa.Integer(), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="unscheduled"),
        sa.Column("scheduled_at", sa.DateTime(), nullable=True),
        sa.Column("home_score", sa.Integer(), nullable=True),
        sa.Column("away_score", sa.Integer(), nullable=True),
        sa.Column("home_pins", sa.Integer(), nullable=True),
        sa.Column("away_pins", sa.Integer(), nullable=True),
    )
    op.create_index("ix_scheduled_matches_tournament_id", "scheduled_matches", ["tournament_id"], unique=False)
    op.create_index("ix_scheduled_matches_round", "scheduled_matches", ["round"], unique=False)
    op.create_index("ix_scheduled_matches_kind", "scheduled_matches", ["kind"], unique=False)
    op.create_index("ix_scheduled_matches_home_team_id", "scheduled_matches", ["home_team_id"], unique=False)
    op.create_index("ix_scheduled_matches_away_team_id", "scheduled_matches", ["away_team_id"], unique=False)
    op.create_index("ix_scheduled_matches_status", "scheduled_matches", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_scheduled_matches_status", table_name="scheduled_matches")
    op.drop_index("ix_scheduled_matches_away_team_id", table_name="scheduled_matches")
    op.drop_index("ix_scheduled_matches_home_team_id", table_name="scheduled_matches")
    op.drop_index("ix_scheduled_matches_kind", table_name="scheduled_matches")
    op.drop_index("ix_scheduled_matches_round", table_name="scheduled_matches")
    op.drop_index("ix_scheduled_matches_tournament_id", table_name="scheduled_matches")
    op.drop_table("scheduled_matches")

    op.drop_index("ix_teams_tournament_id", table_name="teams")
    op.drop_table("teams")

    op.drop_table("tournaments")

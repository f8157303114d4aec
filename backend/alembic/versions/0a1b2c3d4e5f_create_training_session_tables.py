"""create training session tables

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('athletes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_athletes_user_id', 'athletes', ['user_id'])

    op.create_table('exercises',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('exercise_preset_groups',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('exercise_training_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('exercise_preset_group_id', sa.Integer(), nullable=False),
        sa.Column('athlete_id', sa.Integer(), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('date_time', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='assigned'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['exercise_preset_group_id'], ['exercise_preset_groups.id'], ),
        sa.ForeignKeyConstraint(['athlete_id'], ['athletes.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_exercise_training_sessions_exercise_preset_group_id', 'exercise_training_sessions', ['exercise_preset_group_id'])
    op.create_index('ix_exercise_training_sessions_athlete_id', 'exercise_training_sessions', ['athlete_id'])
    op.create_index('ix_exercise_training_sessions_status', 'exercise_training_sessions', ['status'])

    op.create_table('exercise_training_details',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('exercise_training_session_id', sa.Integer(), nullable=False),
        sa.Column('exercise_id', sa.Integer(), nullable=False),
        sa.Column('set_index', sa.Integer(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reps', sa.Integer(), nullable=True),
        sa.Column('weight', sa.Float(), nullable=True),
        sa.Column('distance', sa.Float(), nullable=True),
        sa.Column('performing_time', sa.Float(), nullable=True),
        sa.Column('power', sa.Float(), nullable=True),
        sa.Column('resistance', sa.Float(), nullable=True),
        sa.Column('velocity', sa.Float(), nullable=True),
        sa.Column('tempo', sa.String(), nullable=True),
        sa.Column('rest_time', sa.Integer(), nullable=True),
        sa.Column('rpe', sa.Float(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['exercise_training_session_id'], ['exercise_training_sessions.id'], ),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercises.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('exercise_training_session_id', 'exercise_id', 'set_index',
                            name='uq_training_detail_session_exercise_set'),
    )
    op.create_index('ix_exercise_training_details_exercise_training_session_id', 'exercise_training_details', ['exercise_training_session_id'])
    op.create_index('ix_exercise_training_details_exercise_id', 'exercise_training_details', ['exercise_id'])


def downgrade() -> None:
    op.drop_index('ix_exercise_training_details_exercise_id', table_name='exercise_training_details')
    op.drop_index('ix_exercise_training_details_exercise_training_session_id', table_name='exercise_training_details')
    op.drop_table('exercise_training_details')
    op.drop_index('ix_exercise_training_sessions_status', table_name='exercise_training_sessions')
    op.drop_index('ix_exercise_training_sessions_athlete_id', table_name='exercise_training_sessions')
    op.drop_index('ix_exercise_training_sessions_exercise_preset_group_id', table_name='exercise_training_sessions')
    op.drop_table('exercise_training_sessions')
    op.drop_table('exercise_preset_groups')
    op.drop_table('exercises')
    op.drop_index('ix_athletes_user_id', table_name='athletes')
    op.drop_table('athletes')

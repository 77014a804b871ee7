"""create game_session and game_result

Revision ID: 4b7c9e1d2a3f
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4b7c9e1d2a3f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game_session' not in existing_tables:
        op.create_table(
            'game_session',
            sa.Column('id', sa.String(length=64), primary_key=True),
            sa.Column('game_mode', sa.String(length=16), nullable=False),
            sa.Column('snippets', sa.Text(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('completed_at', sa.DateTime(), nullable=True),
        )

    if 'game_result' not in existing_tables:
        op.create_table(
            'game_result',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('session_id', sa.String(length=64), sa.ForeignKey('game_session.id'), nullable=True),
            sa.Column('player_name', sa.String(length=320), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('total_questions', sa.Integer(), nullable=False),
            sa.Column('time_taken', sa.Float(), nullable=False),
            sa.Column('game_mode', sa.String(length=16), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.CheckConstraint('score >= 0 AND score <= total_questions', name='ck_game_result_score_bounds'),
        )
        op.create_index('ix_game_result_session_id', 'game_result', ['session_id'])
        op.create_index('ix_game_result_ranking', 'game_result', ['game_mode', 'score', 'time_taken'])


def downgrade():
    op.drop_index('ix_game_result_ranking', table_name='game_result')
    op.drop_index('ix_game_result_session_id', table_name='game_result')
    op.drop_table('game_result')
    op.drop_table('game_session')

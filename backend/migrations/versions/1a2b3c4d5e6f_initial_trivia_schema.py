"""initial trivia schema: settings, question, player, game_control, answer

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_title', sa.String(length=120), nullable=False),
        sa.Column('logo_url', sa.String(length=500), nullable=True),
        sa.Column('primary_color', sa.String(length=16), nullable=False),
        sa.Column('secondary_color', sa.String(length=16), nullable=False),
        sa.Column('question_timer', sa.Integer(), nullable=False),
        sa.Column('points_base', sa.Integer(), nullable=False),
        sa.Column('points_factor', sa.Integer(), nullable=False),
        sa.Column('questions_limit', sa.Integer(), nullable=True),
        sa.Column('admin_password', sa.String(length=128), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'question',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('options', sa.Text(), nullable=False),
        sa.Column('correct_option', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nickname', sa.String(length=64), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('player') as batch_op:
        batch_op.create_index('ix_player_nickname', ['nickname'], unique=True)
    op.create_table(
        'game_control',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_status', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('active_question_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['active_question_id'], ['question.id'],
                                name='fk_game_control_active_question_id', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'answer',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('option_index', sa.Integer(), nullable=False),
        sa.Column('correct', sa.Boolean(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('elapsed_seconds', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['player_id'], ['player.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['question.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('player_id', 'question_id', name='uq_answer_player_question'),
    )
    with op.batch_alter_table('answer') as batch_op:
        batch_op.create_index('ix_answer_question', ['question_id'], unique=False)


def downgrade():
    with op.batch_alter_table('answer') as batch_op:
        batch_op.drop_index('ix_answer_question')
    op.drop_table('answer')
    op.drop_table('game_control')
    with op.batch_alter_table('player') as batch_op:
        batch_op.drop_index('ix_player_nickname')
    op.drop_table('player')
    op.drop_table('question')
    op.drop_table('settings')

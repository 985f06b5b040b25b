"""initial pitch booking schema

Revision ID: 4a1b2c3d5e6f
Revises: 
Create Date: 2026-02-02 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4a1b2c3d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'reservations',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('created_by_name', sa.String(length=80), nullable=False),
        sa.Column('created_by_level', sa.String(length=10), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_hour', sa.Integer(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('session_type', sa.String(length=10), nullable=False),
        sa.Column('max_players', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('duration IN (1, 2)', name='ck_reservation_duration'),
        sa.CheckConstraint("session_type IN ('open', 'closed')", name='ck_reservation_session_type'),
        sa.CheckConstraint(
            "(session_type = 'closed' AND max_players IS NULL) OR "
            "(session_type = 'open' AND max_players IS NOT NULL AND max_players >= 2)",
            name='ck_reservation_max_players',
        ),
        sa.CheckConstraint('start_hour >= 8 AND start_hour + duration <= 20', name='ck_reservation_operating_hours'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('reservations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_reservations_date'), ['date'], unique=False)
        batch_op.create_index('ix_reservations_date_start', ['date', 'start_hour'], unique=False)

    op.create_table(
        'reservation_participants',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('reservation_id', sa.String(length=36), nullable=False),
        sa.Column('player_name', sa.String(length=80), nullable=False),
        sa.Column('player_level', sa.String(length=10), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['reservation_id'], ['reservations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reservation_id', 'player_name', 'player_level', name='uq_participant_once')
    )
    with op.batch_alter_table('reservation_participants', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_reservation_participants_reservation_id'), ['reservation_id'], unique=False)

    op.create_table(
        'player_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('player_name', sa.String(length=80), nullable=False),
        sa.Column('player_level', sa.String(length=10), nullable=False),
        sa.Column('token_hash', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_seen_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('player_sessions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_player_sessions_token_hash'), ['token_hash'], unique=True)

    op.create_table(
        'assistant_conversations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('step', sa.String(length=32), nullable=False),
        sa.Column('draft', sa.JSON(), nullable=False),
        sa.Column('transcript', sa.JSON(), nullable=False),
        sa.Column('in_flight', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['player_sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id')
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_name', sa.String(length=80), nullable=True),
        sa.Column('actor_level', sa.String(length=10), nullable=True),
        sa.Column('action', sa.String(length=80), nullable=False),
        sa.Column('entity', sa.String(length=80), nullable=True),
        sa.Column('entity_id', sa.String(length=80), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('metadata_json', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('audit_logs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_audit_logs_timestamp'), ['timestamp'], unique=False)

    op.create_table(
        'ip_rate_limits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ip', sa.String(length=64), nullable=False),
        sa.Column('scope', sa.String(length=32), nullable=False),
        sa.Column('window_start', sa.DateTime(), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ip', 'scope', name='uq_ip_rate_limit_scope')
    )
    with op.batch_alter_table('ip_rate_limits', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_ip_rate_limits_ip'), ['ip'], unique=False)


def downgrade():
    with op.batch_alter_table('ip_rate_limits', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_ip_rate_limits_ip'))
    op.drop_table('ip_rate_limits')

    with op.batch_alter_table('audit_logs', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_audit_logs_timestamp'))
    op.drop_table('audit_logs')

    op.drop_table('assistant_conversations')

    with op.batch_alter_table('player_sessions', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_player_sessions_token_hash'))
    op.drop_table('player_sessions')

    with op.batch_alter_table('reservation_participants', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_reservation_participants_reservation_id'))
    op.drop_table('reservation_participants')

    with op.batch_alter_table('reservations', schema=None) as batch_op:
        batch_op.drop_index('ix_reservations_date_start')
        batch_op.drop_index(batch_op.f('ix_reservations_date'))
    op.drop_table('reservations')

"""player limit trigger (postgres)

Refuses a participant row when the session is closed or already holds
max_players (creator included). Error texts are matched by the store.

Revision ID: 6c3d4e5f7a8b
Revises: 5b2c3d4e6f7a
Create Date: 2026-02-02 00:20:00.000000

"""
from alembic import op


# revision identifiers, used by Alembic.
revision = '6c3d4e5f7a8b'
down_revision = '5b2c3d4e6f7a'
branch_labels = None
depends_on = None


def upgrade():
    if op.get_bind().dialect.name != 'postgresql':
        return
    op.execute(
        """
        CREATE OR REPLACE FUNCTION validate_player_limit()
        RETURNS TRIGGER
        LANGUAGE plpgsql
        AS $$
        DECLARE
          taken INTEGER;
          limit_players INTEGER;
          kind TEXT;
        BEGIN
          SELECT max_players, session_type INTO limit_players, kind
          FROM reservations WHERE id = NEW.reservation_id
          FOR UPDATE;

          IF NOT FOUND THEN
            RAISE EXCEPTION 'Booking not found';
          END IF;

          IF kind = 'closed' THEN
            RAISE EXCEPTION 'Cannot join a closed session';
          END IF;

          SELECT COUNT(*) INTO taken
          FROM reservation_participants WHERE reservation_id = NEW.reservation_id;

          IF limit_players IS NOT NULL AND taken + 2 > limit_players THEN
            RAISE EXCEPTION 'Session is full. Maximum % players allowed.', limit_players;
          END IF;

          RETURN NEW;
        END;
        $$
        """
    )
    op.execute("DROP TRIGGER IF EXISTS check_player_limit ON reservation_participants")
    op.execute(
        """
        CREATE TRIGGER check_player_limit
        BEFORE INSERT ON reservation_participants
        FOR EACH ROW EXECUTE FUNCTION validate_player_limit()
        """
    )


def downgrade():
    if op.get_bind().dialect.name != 'postgresql':
        return
    op.execute("DROP TRIGGER IF EXISTS check_player_limit ON reservation_participants")
    op.execute("DROP FUNCTION IF EXISTS validate_player_limit()")

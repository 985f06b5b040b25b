"""no overlapping reservations (postgres)

Two reservations on the same date may not share an hour. The store already
refuses overlaps in its insert; this keeps writers that bypass it honest.
Half-open ranges: 10-11 and 11-12 do not clash.

Revision ID: 5b2c3d4e6f7a
Revises: 4a1b2c3d5e6f
Create Date: 2026-02-02 00:10:00.000000

"""
from alembic import op


# revision identifiers, used by Alembic.
revision = '5b2c3d4e6f7a'
down_revision = '4a1b2c3d5e6f'
branch_labels = None
depends_on = None


def upgrade():
    if op.get_bind().dialect.name != 'postgresql':
        return
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        """
        ALTER TABLE reservations
        ADD CONSTRAINT no_reservation_overlap
        EXCLUDE USING gist (
            date WITH =,
            int4range(start_hour, start_hour + duration, '[)') WITH &&
        )
        """
    )


def downgrade():
    if op.get_bind().dialect.name != 'postgresql':
        return
    op.execute("ALTER TABLE reservations DROP CONSTRAINT IF EXISTS no_reservation_overlap")

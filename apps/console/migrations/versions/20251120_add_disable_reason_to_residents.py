"""add disable_reason to residents

Stores why a resident record was disabled (relocated, deceased,
pending_issue). Safe to run repeatedly.

Revision ID: 20251120_disable_reason
Revises:
Create Date: 2025-11-20

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20251120_disable_reason'
down_revision = None
branch_labels = None
depends_on = None


TABLE = 'residents'
COLUMN = 'disable_reason'


def _columns(inspector):
    return {col['name'] for col in inspector.get_columns(TABLE)}


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if not inspector.has_table(TABLE):
        return

    columns = _columns(inspector)
    if COLUMN in columns:
        return

    # MySQL/MariaDB keep the column next to for_review
    if bind.dialect.name in ('mysql', 'mariadb') and 'for_review' in columns:
        op.execute(
            f"ALTER TABLE {TABLE} ADD COLUMN {COLUMN} VARCHAR(255) NULL AFTER for_review"
        )
        return

    with op.batch_alter_table(TABLE, schema=None) as batch_op:
        batch_op.add_column(sa.Column(COLUMN, sa.String(length=255), nullable=True))


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if not inspector.has_table(TABLE) or COLUMN not in _columns(inspector):
        return

    with op.batch_alter_table(TABLE, schema=None) as batch_op:
        batch_op.drop_column(COLUMN)

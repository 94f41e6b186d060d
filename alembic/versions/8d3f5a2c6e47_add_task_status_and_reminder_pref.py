"""Add explicit task status and per-user reminder preference

Existing tasks keep status NULL; their status is derived on load from the
completion timestamp and due date.

Revision ID: 8d3f5a2c6e47
Revises: 4a9e1c7b2d10
Create Date: 2026-03-09
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8d3f5a2c6e47"
down_revision: Union[str, Sequence[str], None] = "4a9e1c7b2d10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column("tasks", sa.Column("status", sa.String(), nullable=True))
    op.add_column("users", sa.Column("reminder_pref", sa.String(), nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_column("users", "reminder_pref")
    op.drop_column("tasks", "status")

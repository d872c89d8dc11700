"""Scope day natural key to its split

Revision ID: 8b2e4d61c0f3
Revises: 3f1c2a9d7b10
Create Date: 2025-11-02 10:41:27.903115

"""

from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = "8b2e4d61c0f3"
down_revision: Union[str, None] = "3f1c2a9d7b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Template days of different splits may share a name
    op.drop_index("idx_day_natural_key", table_name="days")
    op.create_index("idx_day_natural_key", "days", ["split_id", "date", "name"])


def downgrade() -> None:
    op.drop_index("idx_day_natural_key", table_name="days")
    op.create_index("idx_day_natural_key", "days", ["date", "name"])

"""add user profile fields

Revision ID: 002_user_profile_fields
Revises: 001_initial_marketplace
Create Date: 2026-10-25 09:00:00.000000

Changes:
  1. users.avatar_url (nullable)
  2. users.bio (nullable, at most 500 characters enforced by the API)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002_user_profile_fields"
down_revision: Union[str, None] = "001_initial_marketplace"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("users", sa.Column("avatar_url", sa.String(length=500), nullable=True))
    op.add_column("users", sa.Column("bio", sa.Text(), nullable=True))


def downgrade() -> None:
    op.drop_column("users", "bio")
    op.drop_column("users", "avatar_url")

"""Records extraction columns

Revision ID: 3c9e1b7d52a4
Revises: 
Create Date: 2026-10-19 09:41:07.512318

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c9e1b7d52a4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    inspector = sa.inspect(op.get_bind())

    if not inspector.has_table('records'):
        op.create_table('records',
            sa.Column('id', sa.BigInteger(), sa.Identity(), nullable=False),
            sa.Column('pdf_url', sa.Text(), nullable=True),
            sa.Column('extracted_text', sa.Text(), nullable=True),
            sa.Column('language', sa.Text(), nullable=True),
            sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        return

    # Existing table: only add what is missing
    existing = {column['name'] for column in inspector.get_columns('records')}
    if 'extracted_text' not in existing:
        op.add_column('records', sa.Column('extracted_text', sa.Text(), nullable=True))
    if 'language' not in existing:
        op.add_column('records', sa.Column('language', sa.Text(), nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_column('records', 'language')
    op.drop_column('records', 'extracted_text')

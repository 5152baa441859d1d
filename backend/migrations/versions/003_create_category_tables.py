"""Create transaction_category and category_embedding tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-12 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'transaction_category',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('slug', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_transaction_category_tenant_slug',
        'transaction_category',
        ['tenant_id', 'slug'],
        unique=True
    )

    # Unconstrained VECTOR: dimension is recorded per row in embedding_dim.
    # Category vectors are compared in process, so no ANN index.
    op.create_table(
        'category_embedding',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('category_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('embedding_model', sa.String(100), nullable=False),
        sa.Column('embedding_dim', sa.Integer(), nullable=False),
        sa.Column('embedding', Vector(), nullable=False),
        sa.Column('embedding_text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['category_id'], ['transaction_category.id'], ondelete='CASCADE'),
    )
    op.create_index(
        'idx_category_embedding_unique',
        'category_embedding',
        ['tenant_id', 'category_id'],
        unique=True
    )

    op.execute("""
        CREATE TRIGGER update_category_embedding_updated_at
        BEFORE UPDATE ON category_embedding
        FOR EACH ROW
        EXECUTE FUNCTION update_updated_at_column();
    """)


def downgrade():
    op.execute('DROP TRIGGER IF EXISTS update_category_embedding_updated_at ON category_embedding')
    op.drop_index('idx_category_embedding_unique', table_name='category_embedding')
    op.drop_table('category_embedding')
    op.drop_index('idx_transaction_category_tenant_slug', table_name='transaction_category')
    op.drop_table('transaction_category')

"""Create ledger_transaction, inbox and their embedding tables

Revision ID: 001
Revises:
Create Date: 2026-10-12 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

EMBEDDING_DIM = 768


def upgrade():
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')
    op.execute('CREATE EXTENSION IF NOT EXISTS "vector"')

    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
          NEW.updated_at = NOW();
          RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.create_table(
        'ledger_transaction',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('merchant_name', sa.Text(), nullable=True),
        sa.Column('amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('currency', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ledger_transaction_tenant_date', 'ledger_transaction', ['tenant_id', 'date'])

    op.create_table(
        'inbox',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('website', sa.Text(), nullable=True),
        sa.Column('amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('currency', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('type', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), server_default='new', nullable=False),
        sa.Column('transaction_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['transaction_id'], ['ledger_transaction.id'], ondelete='SET NULL'),
        sa.CheckConstraint(
            "status IN ('new', 'processing', 'analyzing', 'pending', 'suggested_match', "
            "'no_match', 'done', 'archived', 'deleted')",
            name='ck_inbox_status'
        ),
    )
    op.create_index('ix_inbox_tenant_status', 'inbox', ['tenant_id', 'status'])
    op.create_index('ix_inbox_tenant_created', 'inbox', ['tenant_id', 'created_at'])

    for table, source_column, source_table in (
        ('inbox_embedding', 'inbox_id', 'inbox'),
        ('transaction_embedding', 'transaction_id', 'ledger_transaction'),
    ):
        op.create_table(
            table,
            sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
            sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column(source_column, postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column('embedding', Vector(EMBEDDING_DIM), nullable=False),
            sa.Column('embedding_model', sa.String(100), nullable=False),
            sa.Column('source_text', sa.Text(), nullable=True),
            sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
            sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint([source_column], [f'{source_table}.id'], ondelete='CASCADE'),
        )
        op.create_index(f'idx_{table}_unique', table, [source_column], unique=True)
        op.create_index(f'ix_{table}_tenant', table, ['tenant_id'])

        # HNSW index for the merchant pattern cosine distance filter
        op.execute(f"""
            CREATE INDEX idx_{table}_hnsw
            ON {table}
            USING hnsw (embedding vector_cosine_ops)
            WITH (m = 16, ef_construction = 64)
        """)

    for table in ('inbox', 'inbox_embedding', 'transaction_embedding'):
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade():
    for table in ('inbox', 'inbox_embedding', 'transaction_embedding'):
        op.execute(f'DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}')

    op.execute('DROP INDEX IF EXISTS idx_transaction_embedding_hnsw')
    op.execute('DROP INDEX IF EXISTS idx_inbox_embedding_hnsw')
    op.drop_table('transaction_embedding')
    op.drop_table('inbox_embedding')
    op.drop_table('inbox')
    op.drop_table('ledger_transaction')

    # Extensions and the trigger function may be shared; not dropped

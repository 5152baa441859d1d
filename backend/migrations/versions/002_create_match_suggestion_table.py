"""Create transaction_match_suggestion table

Revision ID: 002
Revises: 001
Create Date: 2026-10-12 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'transaction_match_suggestion',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('inbox_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('transaction_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('amount_score', sa.Float(), nullable=True),
        sa.Column('currency_score', sa.Float(), nullable=True),
        sa.Column('date_score', sa.Float(), nullable=True),
        sa.Column('embedding_score', sa.Float(), nullable=True),
        sa.Column('confidence_score', sa.Float(), server_default='0', nullable=False),
        sa.Column('match_type', sa.Text(), server_default='suggested', nullable=False),
        sa.Column('match_details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.Text(), server_default='pending', nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('user_action_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['inbox_id'], ['inbox.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['transaction_id'], ['ledger_transaction.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('inbox_id', 'transaction_id', name='uq_match_suggestion_pair'),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'declined', 'unmatched')",
            name='ck_match_suggestion_status'
        ),
        sa.CheckConstraint(
            "match_type IN ('auto_matched', 'high_confidence', 'suggested')",
            name='ck_match_suggestion_match_type'
        ),
        sa.CheckConstraint(
            'confidence_score >= 0 AND confidence_score <= 1',
            name='ck_match_suggestion_confidence_range'
        ),
    )

    op.create_index(
        'ix_match_suggestion_tenant_status_created',
        'transaction_match_suggestion',
        ['tenant_id', 'status', 'created_at']
    )
    op.create_index(
        'ix_match_suggestion_dismissed',
        'transaction_match_suggestion',
        ['tenant_id', 'inbox_id', 'transaction_id']
    )

    op.execute("""
        CREATE TRIGGER update_transaction_match_suggestion_updated_at
        BEFORE UPDATE ON transaction_match_suggestion
        FOR EACH ROW
        EXECUTE FUNCTION update_updated_at_column();
    """)


def downgrade():
    op.execute(
        'DROP TRIGGER IF EXISTS update_transaction_match_suggestion_updated_at '
        'ON transaction_match_suggestion'
    )
    op.drop_index('ix_match_suggestion_dismissed', table_name='transaction_match_suggestion')
    op.drop_index('ix_match_suggestion_tenant_status_created', table_name='transaction_match_suggestion')
    op.drop_table('transaction_match_suggestion')

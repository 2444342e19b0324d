"""initial_schema

Crée le schéma complet du moteur d'exécution budgétaire: plan de comptes,
exercices, lignes budgétaires, engagements, créances, virements, révisions,
écritures, lettrage, rapprochements bancaires et ajustements de bilan.

Revision ID: 5c2e8d41a7f0
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5c2e8d41a7f0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(15, 2), nullable=nullable)


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.create_table(
        'account',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('number', sa.String(20), nullable=False, unique=True),
        sa.Column('label', sa.String(200), nullable=False),
        sa.Column('account_class', sa.Integer(), nullable=False),
        sa.Column('nature', sa.String(30), nullable=False),
        sa.Column('account_type', sa.String(30), nullable=False),
        sa.Column('lettrable', sa.Boolean(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        _created_at(),
    )

    op.create_table(
        'accounting_period',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('code', sa.String(20), nullable=False, unique=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('closing_active', sa.Boolean(), nullable=False),
        sa.Column('closing_type', sa.String(30), nullable=True),
        sa.Column('closing_started_at', sa.DateTime(), nullable=True),
        sa.Column('ctl_entries_balanced', sa.Boolean(), nullable=False),
        sa.Column('ctl_trial_balance_coherent', sa.Boolean(), nullable=False),
        sa.Column('ctl_reconciliation_complete', sa.Boolean(), nullable=False),
        sa.Column('ctl_bank_reconciliation_complete', sa.Boolean(), nullable=False),
        sa.Column('adj_depreciation', sa.Boolean(), nullable=False),
        sa.Column('adj_provisions', sa.Boolean(), nullable=False),
        sa.Column('adj_accrued_expenses', sa.Boolean(), nullable=False),
        sa.Column('adj_deferred_revenue', sa.Boolean(), nullable=False),
        sa.Column('controls_validated', sa.Boolean(), nullable=False),
        sa.Column('adjustments_validated', sa.Boolean(), nullable=False),
        sa.Column('definitively_closed', sa.Boolean(), nullable=False),
        sa.Column('carried_forward', sa.Boolean(), nullable=False),
        sa.Column('closed_by', sa.String(200), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('observations', sa.String(1000), nullable=True),
        _money('result_amount', nullable=True),
        sa.Column('carry_forward_ref', sa.String(50), nullable=True),
        sa.Column('successor_id', sa.Integer(), sa.ForeignKey('accounting_period.id'), nullable=True),
        _created_at(),
    )

    op.create_table(
        'budget_line',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('code', sa.String(30), nullable=False, unique=True),
        sa.Column('label', sa.String(300), nullable=False),
        sa.Column('category', sa.String(30), nullable=False),
        sa.Column('period_id', sa.Integer(), sa.ForeignKey('accounting_period.id'), nullable=False),
        sa.Column('account_number', sa.String(20), nullable=True),
        sa.Column('entity', sa.String(200), nullable=True),
        _money('budget_initial'),
        _money('budget_revised'),
        _money('engaged'),
        _money('liquidated'),
        _money('authorized'),
        _money('paid'),
        _money('available'),
        sa.Column('active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'commitment',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('reference', sa.String(50), nullable=False, unique=True),
        sa.Column('budget_line_id', sa.Integer(), sa.ForeignKey('budget_line.id'), nullable=False),
        sa.Column('phase', sa.String(30), nullable=False),
        sa.Column('supplier', sa.String(200), nullable=True),
        sa.Column('purpose', sa.String(500), nullable=True),
        _money('requested_amount'),
        _money('engaged_amount'),
        _money('liquidated_amount'),
        _money('authorized_amount'),
        _money('paid_amount'),
        sa.Column('engagement_document', sa.String(100), nullable=True),
        sa.Column('liquidation_document', sa.String(100), nullable=True),
        sa.Column('authorization_document', sa.String(100), nullable=True),
        sa.Column('payment_document', sa.String(100), nullable=True),
        sa.Column('payment_method', sa.String(30), nullable=True),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        _created_at(),
        sa.Column('engaged_at', sa.DateTime(), nullable=True),
        sa.Column('liquidated_at', sa.DateTime(), nullable=True),
        sa.Column('authorized_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'claim',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('reference', sa.String(50), nullable=False, unique=True),
        sa.Column('budget_line_id', sa.Integer(), sa.ForeignKey('budget_line.id'), nullable=False),
        sa.Column('revenue_type', sa.String(30), nullable=False),
        sa.Column('debtor', sa.String(200), nullable=True),
        sa.Column('phase', sa.String(30), nullable=False),
        _money('recognized_amount'),
        _money('liquidated_amount'),
        _money('collected_amount'),
        sa.Column('prudence_coefficient', sa.Numeric(5, 4), nullable=False),
        _money('provision_for_doubtful_amount'),
        _money('net_prudential_amount'),
        sa.Column('certainty_level', sa.String(30), nullable=False),
        sa.Column('recovery_risk', sa.String(30), nullable=False),
        sa.Column('review_required', sa.Boolean(), nullable=False),
        sa.Column('recognition_document', sa.String(100), nullable=True),
        sa.Column('liquidation_document', sa.String(100), nullable=True),
        sa.Column('payment_method', sa.String(30), nullable=True),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        _created_at(),
        sa.Column('recognized_at', sa.DateTime(), nullable=True),
        sa.Column('liquidated_at', sa.DateTime(), nullable=True),
        sa.Column('collected_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'transfer',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('request_id', sa.String(64), nullable=False, unique=True),
        sa.Column('source_line_id', sa.Integer(), sa.ForeignKey('budget_line.id'), nullable=False),
        sa.Column('destination_line_id', sa.Integer(), sa.ForeignKey('budget_line.id'), nullable=False),
        _money('amount'),
        sa.Column('justification', sa.String(1000), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('decision_note', sa.String(1000), nullable=True),
        _created_at(),
        sa.Column('decided_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'revision',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('reference', sa.String(50), nullable=False, unique=True),
        sa.Column('revision_type', sa.String(30), nullable=False),
        _money('amount'),
        sa.Column('justification', sa.String(1000), nullable=False),
        sa.Column('documents', sa.String(500), nullable=True),
        sa.Column('status', sa.String(30), nullable=False),
        _created_at(),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('decided_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'revision_line',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('revision_id', sa.Integer(), sa.ForeignKey('revision.id'), nullable=False),
        sa.Column('budget_line_id', sa.Integer(), sa.ForeignKey('budget_line.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
    )

    op.create_table(
        'reconciliation_group',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('account_number', sa.String(20), nullable=False),
        sa.Column('letter', sa.String(10), nullable=False),
        _money('total_debit'),
        _money('total_credit'),
        sa.Column('entry_count', sa.Integer(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.Column('dissolved_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_reconciliation_group_account_number', 'reconciliation_group', ['account_number'])

    op.create_table(
        'accounting_entry',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('period_id', sa.Integer(), sa.ForeignKey('accounting_period.id'), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('journal_code', sa.String(5), nullable=False),
        sa.Column('transaction_ref', sa.String(50), nullable=False),
        sa.Column('label', sa.String(300), nullable=False),
        sa.Column('account_number', sa.String(20), nullable=False),
        _money('debit'),
        _money('credit'),
        sa.Column('document_ref', sa.String(100), nullable=True),
        sa.Column('reconciliation_letter', sa.String(10), nullable=True),
        sa.Column(
            'reconciliation_group_id', sa.Integer(),
            sa.ForeignKey('reconciliation_group.id'), nullable=True,
        ),
        sa.Column('lettered_at', sa.DateTime(), nullable=True),
        _created_at(),
    )
    op.create_index('ix_accounting_entry_transaction_ref', 'accounting_entry', ['transaction_ref'])
    op.create_index('ix_accounting_entry_account_number', 'accounting_entry', ['account_number'])

    op.create_table(
        'bank_reconciliation',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('period_id', sa.Integer(), sa.ForeignKey('accounting_period.id'), nullable=False),
        sa.Column('bank_account_number', sa.String(20), nullable=False),
        sa.Column('statement_date', sa.Date(), nullable=False),
        _money('statement_balance'),
        _money('book_balance'),
        _money('difference'),
        sa.Column('balanced', sa.Boolean(), nullable=False),
        sa.Column('observations', sa.String(1000), nullable=True),
        _created_at(),
    )

    op.create_table(
        'balance_adjustment',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('reference', sa.String(50), nullable=False, unique=True),
        sa.Column('period_id', sa.Integer(), sa.ForeignKey('accounting_period.id'), nullable=False),
        sa.Column('account_number', sa.String(20), nullable=False),
        sa.Column('adjustment_type', sa.String(30), nullable=False),
        sa.Column('direction', sa.String(30), nullable=False),
        _money('amount'),
        sa.Column('justification', sa.String(1000), nullable=False),
        sa.Column('author', sa.String(200), nullable=False),
        sa.Column('adjustment_date', sa.Date(), nullable=False),
        _created_at(),
    )


def downgrade() -> None:
    for table in (
        'balance_adjustment',
        'bank_reconciliation',
        'accounting_entry',
        'reconciliation_group',
        'revision_line',
        'revision',
        'transfer',
        'claim',
        'commitment',
        'budget_line',
        'accounting_period',
        'account',
    ):
        op.drop_table(table)

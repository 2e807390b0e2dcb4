from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, UniqueConstraint

from splitledger.db import db
from splitledger.helper.money import format_money

INCOME = 'income'
EXPENSE = 'expense'


class PersonalTransaction(db.Model):
    __tablename__ = 'transactions'
    __table_args__ = (db.Index('ix_transactions_account_id_date', 'account_id', 'transaction_date', postgresql_ops={'transaction_date': 'DESC'}),
                      CheckConstraint('amount > 0', name='check_amount_positive'),)

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey('accounts.id'), nullable=False)
    kind = db.Column(db.Enum(INCOME, EXPENSE, name='transaction_kind'), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    category = db.Column(db.Text, nullable=False)
    title = db.Column(db.Text, nullable=False)
    notes = db.Column(db.Text)
    invoice_url = db.Column(db.Text)
    transaction_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<PersonalTransaction {self.id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'kind': self.kind,
            'amount': format_money(self.amount),
            'category': self.category,
            'title': self.title,
            'notes': self.notes,
            'invoice_url': self.invoice_url,
            'date': self.transaction_date.isoformat(),
        }


class MonthlyHistory(db.Model):
    __tablename__ = 'monthly_history'
    __table_args__ = (UniqueConstraint('account_id', 'year', 'month', name='uq_monthly_history_period'),)

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey('accounts.id'), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)  # 1-12
    income = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    expense = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    def __repr__(self):
        return f"<MonthlyHistory {self.year}-{self.month:02d}>"

    def to_dict(self):
        return {
            'year': self.year,
            'month': self.month,
            'income': format_money(self.income),
            'expense': format_money(self.expense),
            'balance': format_money(self.balance),
        }

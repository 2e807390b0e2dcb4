from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint

from splitledger.db import db, JSONType
from splitledger.helper.money import format_money


class LedgerEntry(db.Model):
    __tablename__ = 'ledger_entries'
    __table_args__ = (db.Index('ix_ledger_entries_group_id_date', 'group_id', 'entry_date', postgresql_ops={'entry_date': 'DESC'}),
                      CheckConstraint('amount > 0', name='check_entry_amount_positive'),)

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False)
    payer_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    participants = db.Column(JSONType, nullable=False)  # sorted member ids
    share_details = db.Column(JSONType, nullable=False)  # [{member_id, amount}], amounts as strings
    category = db.Column(db.Text, nullable=False)
    title = db.Column(db.Text, nullable=False)
    entry_date = db.Column(db.Date, nullable=False)
    note = db.Column(db.Text)
    attachment_url = db.Column(db.Text)
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def shares(self):
        return {share['member_id']: Decimal(share['amount']) for share in self.share_details}

    def __repr__(self):
        return f"<LedgerEntry {self.id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'group_id': self.group_id,
            'payer_id': self.payer_id,
            'amount': format_money(self.amount),
            'participants': list(self.participants),
            'share_details': self.share_details,
            'category': self.category,
            'title': self.title,
            'date': self.entry_date.isoformat(),
            'note': self.note,
            'attachment_url': self.attachment_url,
        }

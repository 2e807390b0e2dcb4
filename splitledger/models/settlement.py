from datetime import datetime, timezone

from sqlalchemy import CheckConstraint

from splitledger.db import db
from splitledger.helper.money import format_money


class Settlement(db.Model):
    __tablename__ = 'settlements'
    __table_args__ = (db.Index('ix_settlements_group_id_created_at', 'group_id', 'created_at', postgresql_ops={'created_at': 'DESC'}),
                      CheckConstraint('amount > 0', name='check_settlement_amount_positive'),)

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False)
    payer_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    payee_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    note = db.Column(db.Text)
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Settlement {self.id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'group_id': self.group_id,
            'payer_id': self.payer_id,
            'payee_id': self.payee_id,
            'amount': format_money(self.amount),
            'note': self.note,
            'created_at': self.created_at.isoformat(),
        }

from sqlalchemy import CheckConstraint, UniqueConstraint

from splitledger.db import db
from splitledger.helper.money import format_money


class PairBalance(db.Model):
    """Net amount ``debtor`` owes ``creditor`` in a group.

    One row per unordered member pair; ``member_low``/``member_high`` carry the
    pair key so the opposite direction can never be inserted next to it.
    """
    __tablename__ = 'pair_balances'
    __table_args__ = (UniqueConstraint('group_id', 'member_low', 'member_high', name='uq_pair_balances_pair'),
                      CheckConstraint('amount > 0', name='check_balance_amount_positive'),
                      CheckConstraint('debtor_id <> creditor_id', name='check_balance_distinct_members'),)

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False)
    debtor_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    creditor_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    member_low = db.Column(db.Integer, nullable=False)
    member_high = db.Column(db.Integer, nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version}

    def point(self, debtor_id, creditor_id, amount):
        self.debtor_id = debtor_id
        self.creditor_id = creditor_id
        self.member_low, self.member_high = sorted((debtor_id, creditor_id))
        self.amount = amount

    def signed_for(self, debtor_id):
        """Amount as seen from ``debtor_id``: positive when it owes, negative when it is owed."""
        return self.amount if self.debtor_id == debtor_id else -self.amount

    def __repr__(self):
        return f"<PairBalance {self.debtor_id}->{self.creditor_id} {self.amount}>"

    def to_dict(self):
        return {
            'group_id': self.group_id,
            'debtor_id': self.debtor_id,
            'creditor_id': self.creditor_id,
            'amount': format_money(self.amount),
        }

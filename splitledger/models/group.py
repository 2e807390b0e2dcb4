from datetime import datetime, timezone

from splitledger.db import db
from splitledger.helper.money import format_money

group_members = db.Table(
    'group_members',
    db.Column('group_id', db.Integer, db.ForeignKey('groups.id', ondelete='CASCADE'), primary_key=True),
    db.Column('member_id', db.Integer, db.ForeignKey('members.id', ondelete='CASCADE'), primary_key=True),
)


class Member(db.Model):
    """An account's identity inside groups. One per account, shared by all its groups."""
    __tablename__ = 'members'

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey('accounts.id'), unique=True, nullable=False)
    display_name = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.Text)

    account = db.relationship('Account', back_populates='member')
    groups = db.relationship('Group', secondary=group_members, back_populates='members')

    def __repr__(self):
        return f"<Member {self.id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'account_id': self.account_id,
            'display_name': self.display_name,
            'image_url': self.image_url,
        }


class Group(db.Model):
    __tablename__ = 'groups'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.Text)
    owner_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    total_expense = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    category = db.Column(db.Text, nullable=False, default='NONE')
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    owner = db.relationship('Member', foreign_keys=[owner_id])
    members = db.relationship('Member', secondary=group_members, back_populates='groups', order_by='Member.id')
    entries = db.relationship('LedgerEntry', backref='group', cascade='all')
    balances = db.relationship('PairBalance', backref='group', cascade='all')
    settlements = db.relationship('Settlement', backref='group', cascade='all')
    invitations = db.relationship('Invitation', backref='group', cascade='all')

    def has_member(self, member_id):
        return any(member.id == member_id for member in self.members)

    def __repr__(self):
        return f"<Group {self.id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'image_url': self.image_url,
            'owner_id': self.owner_id,
            'category': self.category,
            'total_expense': format_money(self.total_expense),
            'members': [member.to_dict() for member in self.members],
        }

from datetime import datetime, timezone

from sqlalchemy import text

from splitledger.db import db

PENDING = 'PENDING'
ACCEPTED = 'ACCEPTED'
REJECTED = 'REJECTED'
STATUSES = (PENDING, ACCEPTED, REJECTED)


class Invitation(db.Model):
    __tablename__ = 'invitations'
    __table_args__ = (db.Index('uq_invitations_pending', 'group_id', 'receiver_id', unique=True,
                               postgresql_where=text("status = 'PENDING'"),
                               sqlite_where=text("status = 'PENDING'")),)

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False)
    sender_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    receiver_id = db.Column(db.Integer, db.ForeignKey('accounts.id'), nullable=False)
    status = db.Column(db.Enum(*STATUSES, name='invitation_status'), nullable=False, default=PENDING)
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    responded_at = db.Column(db.TIMESTAMP(timezone=True))

    sender = db.relationship('Member')

    @property
    def is_pending(self):
        return self.status == PENDING

    def __repr__(self):
        return f"<Invitation {self.id} {self.status}>"

    def to_dict(self):
        return {
            'id': self.id,
            'group_id': self.group_id,
            'group_name': self.group.name if self.group else None,
            'sender_id': self.sender_id,
            'sender_name': self.sender.display_name if self.sender else None,
            'receiver_id': self.receiver_id,
            'status': self.status,
        }

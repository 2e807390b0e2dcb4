from datetime import datetime, timezone

from werkzeug.security import check_password_hash, generate_password_hash

from splitledger.db import db
from splitledger.helper.money import format_money


class Account(db.Model):
    __tablename__ = 'accounts'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    profile_picture = db.Column(db.Text)
    total_income = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_expense = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    member = db.relationship('Member', back_populates='account', uselist=False)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<Account {self.username}>"

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'profile_picture': self.profile_picture,
            'total_income': format_money(self.total_income),
            'total_expense': format_money(self.total_expense),
            'total_balance': format_money(self.total_balance),
        }

    def to_public_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'profile_picture': self.profile_picture,
        }


class PendingRegistration(db.Model):
    """Sign-up waiting for its emailed code; becomes an Account once verified."""
    __tablename__ = 'pending_registrations'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    username = db.Column(db.String(80), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    profile_picture = db.Column(db.Text)
    otp_hash = db.Column(db.String(255), nullable=False)
    expires_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False)
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def set_otp(self, otp):
        self.otp_hash = generate_password_hash(otp)

    def check_otp(self, otp):
        return check_password_hash(self.otp_hash, otp)

    def is_expired(self, now=None):
        expires_at = self.expires_at
        # SQLite hands timestamps back without a zone
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return (now or datetime.now(timezone.utc)) >= expires_at

    def __repr__(self):
        return f"<PendingRegistration {self.email}>"

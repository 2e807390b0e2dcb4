"""Sign-up, login and account search.

Sign-up is two steps: ``send_verification`` parks the details with a hashed
one-time code, ``verify_otp`` checks the code and creates the Account.
``register`` creates an Account in one step, without a code.
"""
import logging
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from splitledger.db import db
from splitledger.errors import DuplicateAccount, InvalidOtp, InvalidPayload, NotFound, OtpExpired, Unauthenticated
from splitledger.helper.otp import generate_otp, get_sender
from splitledger.helper.payloads import optional_text
from splitledger.models import Account, PendingRegistration

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


def _validate_registration(username, email, password):
    if not isinstance(username, str) or not username.strip():
        raise InvalidPayload('Username is required')
    if not isinstance(email, str) or '@' not in email:
        raise InvalidPayload('A valid email is required')
    if not isinstance(password, str) or len(password) < 6:
        raise InvalidPayload('Password must be at least 6 characters')
    return username.strip(), email.strip().lower()


def _ensure_unique(username, email):
    existing = Account.query.filter(or_(Account.email == email, Account.username == username)).first()
    if existing is not None:
        if existing.email == email:
            raise DuplicateAccount('Email should be unique')
        raise DuplicateAccount('Username should be unique')


def _new_account(username, email, profile_picture):
    return Account(username=username, email=email, profile_picture=optional_text(profile_picture),
                   total_income=0, total_expense=0, total_balance=0)


def _save_account(account):
    try:
        db.session.add(account)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateAccount()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Account %s registered", account.id)
    return account


def register(username, email, password, profile_picture=None):
    username, email = _validate_registration(username, email, password)
    _ensure_unique(username, email)

    account = _new_account(username, email, profile_picture)
    account.set_password(password)
    return _save_account(account)


def send_verification(username, email, password, profile_picture=None, sender=None):
    """Park a sign-up and hand a fresh code to the OTP sender.

    Asking again for the same email replaces the earlier code.
    """
    username, email = _validate_registration(username, email, password)
    _ensure_unique(username, email)

    otp = generate_otp()
    pending = PendingRegistration.query.filter_by(email=email).first()
    if pending is None:
        pending = PendingRegistration(email=email)
    pending.username = username
    pending.profile_picture = optional_text(profile_picture)
    pending.set_password(password)
    pending.set_otp(otp)
    pending.expires_at = datetime.now(timezone.utc) + timedelta(seconds=current_app.config['OTP_EXPIRE_SECONDS'])
    try:
        db.session.add(pending)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    (sender or get_sender()).send(email, otp)
    logger.info("Verification code sent to %s", email)
    return pending


def verify_otp(email, otp):
    """Check the code for ``email`` and turn its pending sign-up into an Account."""
    if not isinstance(email, str) or not isinstance(otp, str) or not otp.strip():
        raise InvalidPayload('Email and OTP are required')

    pending = PendingRegistration.query.filter_by(email=email.strip().lower()).first()
    if pending is None:
        raise NotFound('OTP not found')
    if pending.is_expired():
        db.session.delete(pending)
        db.session.commit()
        raise OtpExpired()
    if not pending.check_otp(otp.strip()):
        raise InvalidOtp()

    _ensure_unique(pending.username, pending.email)
    account = _new_account(pending.username, pending.email, pending.profile_picture)
    account.password_hash = pending.password_hash
    db.session.delete(pending)
    return _save_account(account)


def authenticate(username_or_email, password):
    if not username_or_email or not password:
        raise InvalidPayload('Username or email and password are required')

    account = (Account.query
               .filter(or_(Account.email == str(username_or_email).strip().lower(),
                           Account.username == str(username_or_email).strip()))
               .first())
    if account is None:
        raise Unauthenticated('You need to register first')
    if not account.check_password(password):
        raise Unauthenticated('Incorrect password')
    return account


def search_accounts(filter_text, exclude_id=None):
    if not filter_text:
        return []
    escaped = filter_text.strip().replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    pattern = f"%{escaped}%"
    query = Account.query.filter(or_(Account.username.ilike(pattern, escape='\\'),
                                     Account.email.ilike(pattern, escape='\\')))
    if exclude_id is not None:
        query = query.filter(Account.id != exclude_id)
    return query.order_by(Account.username).limit(SEARCH_LIMIT).all()

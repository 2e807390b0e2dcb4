from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, request

from splitledger.db import db
from splitledger.errors import Unauthenticated
from splitledger.models import Account


def create_access_token(account):
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(account.id),
        'iat': now,
        'exp': now + timedelta(minutes=current_app.config['JWT_EXPIRE_MINUTES']),
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'],
                      algorithm=current_app.config['JWT_ALGORITHM'])


def account_from_token(token):
    if not token:
        raise Unauthenticated()
    try:
        payload = jwt.decode(token, current_app.config['JWT_SECRET_KEY'],
                             algorithms=[current_app.config['JWT_ALGORITHM']])
        account_id = int(payload['sub'])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated('Token has expired')
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise Unauthenticated()

    account = db.session.get(Account, account_id)
    if account is None:
        raise Unauthenticated()
    return account


def set_token_cookie(response, token):
    secure = current_app.config['JWT_COOKIE_SECURE']
    response.set_cookie(current_app.config['JWT_COOKIE_NAME'], token,
                        max_age=current_app.config['JWT_EXPIRE_MINUTES'] * 60,
                        httponly=True, secure=secure, samesite='None' if secure else 'Lax')
    return response


def clear_token_cookie(response):
    response.delete_cookie(current_app.config['JWT_COOKIE_NAME'])
    return response


def login_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = request.cookies.get(current_app.config['JWT_COOKIE_NAME'])
        g.account = account_from_token(token)
        return f(*args, **kwargs)
    return decorated

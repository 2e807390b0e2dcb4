import logging

from flask import current_app, request
from flask_socketio import emit
from sqlalchemy.exc import SQLAlchemyError

from splitledger.db import db
from splitledger.errors import LedgerError, Unauthenticated
from splitledger.helper.accounts import search_accounts
from splitledger.helper.auth import account_from_token
from splitledger.helper.membership import send_invitation
from splitledger.helper.payloads import parse_id
from splitledger.websocket import connections, socketio

logger = logging.getLogger(__name__)


@socketio.on('connect')
def handle_connect(auth=None):
    token = (auth or {}).get('token') or request.cookies.get(current_app.config['JWT_COOKIE_NAME'])
    try:
        account = account_from_token(token)
    except Unauthenticated:
        logger.info("Rejected unauthenticated socket %s", request.sid)
        return False
    connections.register(account.id, request.sid)
    logger.debug("Account %s connected on %s", account.id, request.sid)


@socketio.on('disconnect')
def handle_disconnect(*args):
    account_id = connections.unregister(request.sid)
    logger.debug("Account %s disconnected from %s", account_id, request.sid)


@socketio.on('searchAccounts')
def handle_search_accounts(filter_text):
    account_id = connections.account_for(request.sid)
    if account_id is None:
        return
    accounts = search_accounts(filter_text if isinstance(filter_text, str) else '', exclude_id=account_id)
    emit('filteredAccounts', [account.to_public_dict() for account in accounts])


@socketio.on('sendInvitations')
def handle_send_invitations(data):
    account_id = connections.account_for(request.sid)
    if account_id is None or not isinstance(data, dict):
        return

    sent, failed = [], []
    try:
        group_id = parse_id(data.get('group_id'), 'group id')
    except LedgerError as e:
        emit('invitationsSent', {'sent': sent, 'failed': [{'account_id': None, **e.to_dict()}]})
        return

    for receiver_id in data.get('account_ids') or []:
        try:
            invitation = send_invitation(group_id, account_id, parse_id(receiver_id, 'account id'))
            sent.append(invitation.to_dict())
        except LedgerError as e:
            failed.append({'account_id': receiver_id, **e.to_dict()})
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Database error inviting account %s to group %s: %s", receiver_id, group_id, e)
            failed.append({'account_id': receiver_id, 'message': 'Database error occurred', 'error': str(e)})
    emit('invitationsSent', {'sent': sent, 'failed': failed})

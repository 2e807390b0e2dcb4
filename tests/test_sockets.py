import pytest
from sqlalchemy.exc import SQLAlchemyError

from splitledger.api import sockets
from splitledger.db import db
from splitledger.helper.auth import create_access_token
from splitledger.models import Account, Invitation
from splitledger.models.invitation import PENDING
from splitledger.websocket import connections, socketio

from .conftest import make_account


def _connect(app, account_id):
    account = db.session.get(Account, account_id)
    return socketio.test_client(app, auth={'token': create_access_token(account)})


def _received(sio, name):
    return [event['args'][0] for event in sio.get_received() if event['name'] == name]


@pytest.fixture
def alice_socket(app, party):
    sio = _connect(app, party.account('alice'))
    yield sio
    if sio.is_connected():
        sio.disconnect()


def test_connect_without_credentials_is_refused(app):
    sio = socketio.test_client(app)
    assert not sio.is_connected()


def test_connect_with_bad_token_is_refused(app):
    sio = socketio.test_client(app, auth={'token': 'not-a-jwt'})
    assert not sio.is_connected()


def test_auth_token_registers_connection(party, alice_socket):
    alice = party.account('alice')
    assert alice_socket.is_connected()
    assert connections.is_connected(alice)

    alice_socket.disconnect()
    assert not connections.is_connected(alice)


def test_login_cookie_registers_connection(app, party):
    client = app.test_client()
    response = client.post('/api/login', json={'username_or_email': 'bob', 'password': 'secret123'})
    assert response.status_code == 200

    sio = socketio.test_client(app, flask_test_client=client)

    assert sio.is_connected()
    assert connections.is_connected(party.account('bob'))
    sio.disconnect()


def test_search_replies_with_matching_accounts(party, alice_socket):
    dave = make_account('dave')

    alice_socket.emit('searchAccounts', 'DA')
    assert _received(alice_socket, 'filteredAccounts') == [
        [{'id': dave.id, 'username': 'dave', 'profile_picture': None}],
    ]

    alice_socket.emit('searchAccounts', 'alice')
    assert _received(alice_socket, 'filteredAccounts') == [[]]


def test_send_invitations_reports_each_receiver(party, alice_socket):
    dave, erin = make_account('dave').id, make_account('erin').id
    bob = party.account('bob')

    alice_socket.emit('sendInvitations', {
        'group_id': party.group_id,
        'account_ids': [dave, bob, 'x', dave, erin],
    })
    [result] = _received(alice_socket, 'invitationsSent')

    assert [invitation['receiver_id'] for invitation in result['sent']] == [dave, erin]
    assert [(failure['account_id'], failure['error']) for failure in result['failed']] == [
        (bob, 'AlreadyMember'),
        ('x', 'InvalidPayload'),
        (dave, 'DuplicateInvitation'),
    ]
    assert Invitation.query.filter_by(group_id=party.group_id, status=PENDING).count() == 2


def test_outsider_cannot_send_invitations(app, party):
    erin = make_account('erin')
    dave = make_account('dave').id
    sio = _connect(app, erin.id)

    sio.emit('sendInvitations', {'group_id': party.group_id, 'account_ids': [dave]})
    [result] = _received(sio, 'invitationsSent')

    assert result['sent'] == []
    assert [failure['error'] for failure in result['failed']] == ['NotAMember']
    assert Invitation.query.filter_by(receiver_id=dave).count() == 0
    sio.disconnect()


def test_bad_group_id_is_reported(party, alice_socket):
    alice_socket.emit('sendInvitations', {'group_id': 'abc', 'account_ids': [party.account('bob')]})
    [result] = _received(alice_socket, 'invitationsSent')

    assert result['sent'] == []
    assert [(failure['account_id'], failure['error']) for failure in result['failed']] == [(None, 'InvalidPayload')]


def test_database_error_is_reported_with_the_rest(party, alice_socket, monkeypatch):
    dave, erin = make_account('dave').id, make_account('erin').id
    real_send = sockets.send_invitation

    def flaky_send(group_id, account_id, receiver_id):
        if receiver_id == erin:
            raise SQLAlchemyError('connection lost')
        return real_send(group_id, account_id, receiver_id)

    monkeypatch.setattr(sockets, 'send_invitation', flaky_send)

    alice_socket.emit('sendInvitations', {'group_id': party.group_id, 'account_ids': [erin, dave]})
    [result] = _received(alice_socket, 'invitationsSent')

    assert [invitation['receiver_id'] for invitation in result['sent']] == [dave]
    [failure] = result['failed']
    assert failure['account_id'] == erin
    assert failure['message'] == 'Database error occurred'
    assert 'connection lost' in failure['error']

import pytest

from splitledger.helper.entries import record_entry
from splitledger.helper.membership import send_invitation
from splitledger.websocket import ConnectionRegistry, connections, notify_group, socketio

from .conftest import balance_map, make_account


@pytest.fixture
def emitted(monkeypatch):
    sent = []
    monkeypatch.setattr(socketio, 'emit', lambda event, payload, to=None: sent.append((event, payload, to)))
    return sent


def test_registry_tracks_sockets_per_account():
    registry = ConnectionRegistry()
    registry.register(1, 'a')
    registry.register(1, 'b')
    registry.register(2, 'c')

    assert sorted(registry.sids_for(1)) == ['a', 'b']
    assert registry.account_for('c') == 2

    assert registry.unregister('a') == 1
    assert registry.sids_for(1) == ['b']
    assert registry.unregister('b') == 1
    assert not registry.is_connected(1)
    assert registry.unregister('missing') is None


def test_entry_pushes_group_view_to_connected_members(party, emitted):
    connections.register(party.account('bob'), 'sid-bob')

    record_entry(party.group_id, party.account('alice'), party.member('alice'),
                 [party.member('alice'), party.member('bob')], '20', 'food', 'Lunch')

    assert len(emitted) == 1
    event, payload, to = emitted[0]
    assert (event, to) == ('groupUpdated', 'sid-bob')
    assert payload['group']['id'] == party.group_id
    assert payload['balances'] == [{
        'group_id': party.group_id,
        'debtor_id': party.member('bob'),
        'creditor_id': party.member('alice'),
        'amount': '10.00',
    }]


def test_nobody_connected_means_no_emits(party, emitted):
    notify_group(party.group_id)
    assert emitted == []


def test_invitation_reaches_receiver(party, emitted):
    dave = make_account('dave')
    connections.register(dave.id, 'sid-dave')

    send_invitation(party.group_id, party.account('alice'), dave.id)

    assert [(event, to) for event, _, to in emitted] == [('invitationReceived', 'sid-dave')]
    assert emitted[0][1]['invitation']['group_name'] == 'Trip'


def test_failed_emit_does_not_fail_the_mutation(party, monkeypatch):
    def broken_emit(*args, **kwargs):
        raise RuntimeError('socket closed')

    monkeypatch.setattr(socketio, 'emit', broken_emit)
    connections.register(party.account('bob'), 'sid-bob')

    record_entry(party.group_id, party.account('alice'), party.member('alice'),
                 [party.member('alice'), party.member('bob')], '20', 'food', 'Lunch')

    assert balance_map(party.group_id) == {(party.member('bob'), party.member('alice')): 10}

from decimal import Decimal
from types import SimpleNamespace

import pytest

from splitledger.app import create_app
from splitledger.config import TestConfig
from splitledger.db import db
from splitledger.helper.accounts import register
from splitledger.helper.balances import group_balances, ledger_positions, member_positions
from splitledger.helper.membership import accept_invitation, create_group, member_for_account, send_invitation
from splitledger.models import LedgerEntry, Settlement
from splitledger.websocket import connections


class OutboxSender:
    """Keeps the last code sent to each email."""

    def __init__(self):
        self.sent = {}

    def send(self, email, otp):
        self.sent[email] = otp


@pytest.fixture
def app():
    app = create_app(TestConfig)
    app.extensions['otp_sender'] = OutboxSender()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
    connections.clear()


@pytest.fixture
def client(app):
    return app.test_client()


def make_account(name):
    return register(name, f"{name}@example.com", "secret123")


def join(group_id, owner_account_id, account):
    invitation = send_invitation(group_id, owner_account_id, account.id)
    accept_invitation(invitation.id, account.id)
    return member_for_account(account.id)


def build_party(names=('alice', 'bob', 'carol'), group_name='Trip'):
    """Accounts for ``names`` in one group owned by the first of them."""
    accounts = {name: make_account(name) for name in names}
    owner = accounts[names[0]]
    group = create_group(owner.id, group_name)
    members = {names[0]: member_for_account(owner.id)}
    for name in names[1:]:
        members[name] = join(group.id, owner.id, accounts[name])
    return SimpleNamespace(
        group_id=group.id,
        account=lambda name: accounts[name].id,
        member=lambda name: members[name].id,
    )


@pytest.fixture
def party(app):
    return build_party()


def balance_map(group_id):
    return {(balance.debtor_id, balance.creditor_id): balance.amount for balance in group_balances(group_id)}


def assert_ledger_consistent(group_id):
    balances = group_balances(group_id)
    entries = LedgerEntry.query.filter_by(group_id=group_id).all()
    settlements = Settlement.query.filter_by(group_id=group_id).all()

    positions = member_positions(balances)
    assert positions == ledger_positions(entries, settlements)
    assert sum(positions.values(), Decimal('0')) == 0

    pairs = {(balance.debtor_id, balance.creditor_id) for balance in balances}
    assert not any((creditor, debtor) in pairs for debtor, creditor in pairs)
    assert all(balance.amount > 0 for balance in balances)

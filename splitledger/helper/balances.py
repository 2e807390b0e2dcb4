"""Balance aggregation for group ledgers.

PairBalance rows are the authoritative, netted view of every entry and
settlement in a group: one row per unordered member pair, pointing from
debtor to creditor, never zero.
"""
import logging
from collections import defaultdict
from decimal import Decimal

from splitledger.db import db
from splitledger.errors import InvalidAmount
from splitledger.helper.money import CENT, ZERO, format_money
from splitledger.models import PairBalance

logger = logging.getLogger(__name__)


def split_shares(amount, participant_ids):
    """Split ``amount`` evenly in cents over the participants.

    Leftover cents go one each to the lowest member ids, so the shares
    always add up to ``amount`` exactly.
    """
    participants = sorted(set(participant_ids))
    if not participants:
        raise InvalidAmount('At least one participant is required')

    cents = int((amount / CENT).to_integral_value())
    base, remainder = divmod(cents, len(participants))

    shares = {}
    for index, member_id in enumerate(participants):
        extra = 1 if index < remainder else 0
        shares[member_id] = Decimal(base + extra) * CENT
    return shares


def share_details(shares):
    return [{'member_id': member_id, 'amount': format_money(amount)}
            for member_id, amount in sorted(shares.items())]


def adjust(group_id, debtor_id, creditor_id, delta):
    """Move ``delta`` onto "debtor owes creditor", netting against the reverse direction.

    Returns the surviving PairBalance, or None when the pair nets to zero.
    Must run inside ``group_transaction`` so the read-modify-write is serialized.
    """
    if debtor_id == creditor_id or delta == 0:
        return None

    low, high = sorted((debtor_id, creditor_id))
    balance = PairBalance.query.filter_by(group_id=group_id, member_low=low, member_high=high).first()

    if balance is None:
        balance = PairBalance(group_id=group_id)
        if delta > 0:
            balance.point(debtor_id, creditor_id, delta)
        else:
            balance.point(creditor_id, debtor_id, -delta)
        db.session.add(balance)
        return balance

    net = balance.signed_for(debtor_id) + delta
    if net == 0:
        db.session.delete(balance)
        return None

    if net > 0:
        balance.point(debtor_id, creditor_id, net)
    else:
        balance.point(creditor_id, debtor_id, -net)
    return balance


def apply_entry(entry, sign=1):
    for member_id, share in entry.shares().items():
        if member_id != entry.payer_id:
            adjust(entry.group_id, member_id, entry.payer_id, sign * share)


def reverse_entry(entry):
    apply_entry(entry, sign=-1)


def group_balances(group_id):
    return (PairBalance.query
            .filter_by(group_id=group_id)
            .order_by(PairBalance.debtor_id, PairBalance.creditor_id)
            .all())


def member_positions(balances):
    """Net position per member from PairBalances: positive means the member is owed."""
    positions = defaultdict(Decimal)
    for balance in balances:
        positions[balance.creditor_id] += balance.amount
        positions[balance.debtor_id] -= balance.amount
    return {member_id: amount for member_id, amount in positions.items() if amount != 0}


def ledger_positions(entries, settlements):
    """Net position per member computed straight from entries and settlements."""
    positions = defaultdict(Decimal)
    for entry in entries:
        for member_id, share in entry.shares().items():
            if member_id == entry.payer_id:
                continue
            positions[entry.payer_id] += share
            positions[member_id] -= share
    for settlement in settlements:
        positions[settlement.payer_id] += settlement.amount
        positions[settlement.payee_id] -= settlement.amount
    return {member_id: amount for member_id, amount in positions.items() if amount != 0}


def settle_up(positions):
    """Greedy payment plan that clears every position in at most n - 1 payments."""
    creditors = sorted((member_id, amount) for member_id, amount in positions.items() if amount > 0)
    debtors = sorted((member_id, -amount) for member_id, amount in positions.items() if amount < 0)

    settlements = []
    while creditors and debtors:
        creditor, credit_amount = creditors.pop(0)
        debtor, debt_amount = debtors.pop(0)

        settlement_amount = min(credit_amount, debt_amount)

        settlements.append({
            "creditor_id": creditor,
            "debtor_id": debtor,
            "amount": format_money(settlement_amount)
        })

        if credit_amount > settlement_amount:
            creditors.insert(0, (creditor, credit_amount - settlement_amount))
        if debt_amount > settlement_amount:
            debtors.insert(0, (debtor, debt_amount - settlement_amount))

    return settlements


def calculate_member_expenditures(entries):
    expenditures = defaultdict(lambda: ZERO)
    for entry in entries:
        for member_id, share in entry.shares().items():
            expenditures[member_id] += share
    return {member_id: format_money(amount) for member_id, amount in expenditures.items()}

import logging

from splitledger.db import db
from splitledger.errors import NoSuchBalance, NotAuthorized, NotFound, OverSettlement
from splitledger.helper.balances import adjust
from splitledger.helper.locking import group_transaction
from splitledger.helper.membership import SETTLE, VIEW, authorize, require_members
from splitledger.helper.money import format_money, to_money
from splitledger.helper.payloads import optional_text, parse_id
from splitledger.models import PairBalance, Settlement
from splitledger.websocket import notify_group

logger = logging.getLogger(__name__)


def settle(group_id, account_id, payee_id, amount, note=None):
    """Record that the caller paid ``amount`` of what it owes ``payee_id``.

    Paying more than the outstanding balance is refused with OverSettlement;
    amounts are never clamped.
    """
    amount = to_money(amount)
    payee_id = parse_id(payee_id, 'payee id')

    with group_transaction(group_id) as group:
        payer = authorize(group_id, account_id, SETTLE, group)
        require_members(group, [payee_id])

        balance = PairBalance.query.filter_by(group_id=group_id, debtor_id=payer.id, creditor_id=payee_id).first()
        if balance is None:
            raise NoSuchBalance(f"You do not owe member {payee_id} anything")
        if amount > balance.amount:
            raise OverSettlement(f"Outstanding balance is {format_money(balance.amount)}")

        adjust(group_id, payer.id, payee_id, -amount)
        settlement = Settlement(group_id=group_id, payer_id=payer.id, payee_id=payee_id,
                                amount=amount, note=optional_text(note))
        db.session.add(settlement)

    logger.info("Member %s settled %s with member %s in group %s", settlement.payer_id, amount, payee_id, group_id)
    notify_group(group_id)
    return settlement


def delete_settlement(group_id, account_id, settlement_id):
    """Undo a settlement. Only its payer or the group owner may do this."""
    with group_transaction(group_id) as group:
        member = authorize(group_id, account_id, SETTLE, group)
        settlement = Settlement.query.filter_by(id=settlement_id, group_id=group_id).first()
        if settlement is None:
            raise NotFound('Settlement not found')
        if member.id not in (settlement.payer_id, group.owner_id):
            raise NotAuthorized('Only the payer or the group owner can undo a settlement')

        adjust(group_id, settlement.payer_id, settlement.payee_id, settlement.amount)
        data = settlement.to_dict()
        db.session.delete(settlement)

    logger.info("Settlement %s undone in group %s", settlement_id, group_id)
    notify_group(group_id)
    return data


def get_settlement(group_id, account_id, settlement_id):
    authorize(group_id, account_id, VIEW)
    settlement = Settlement.query.filter_by(id=settlement_id, group_id=group_id).first()
    if settlement is None:
        raise NotFound('Settlement not found')
    return settlement


def list_settlements(group_id, account_id):
    authorize(group_id, account_id, VIEW)
    return (Settlement.query
            .filter_by(group_id=group_id)
            .order_by(Settlement.created_at.desc(), Settlement.id.desc())
            .all())

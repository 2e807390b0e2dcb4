import logging

from sqlalchemy import update

from splitledger.db import db
from splitledger.errors import InvalidPayload, NotFound
from splitledger.helper.balances import apply_entry, reverse_entry, share_details, split_shares
from splitledger.helper.locking import group_transaction
from splitledger.helper.membership import RECORD, VIEW, authorize, require_members
from splitledger.helper.money import to_money
from splitledger.helper.payloads import optional_text, parse_date, parse_id, parse_member_ids, require_text
from splitledger.models import Group, LedgerEntry
from splitledger.websocket import notify_group

logger = logging.getLogger(__name__)

FINANCIAL_FIELDS = ('amount', 'payer_id', 'participants')
COSMETIC_FIELDS = ('title', 'category', 'date', 'note', 'attachment_url')


def _bump_total(group_id, delta):
    # SQL-side increment, concurrent writers never overwrite each other's total
    db.session.execute(
        update(Group)
        .where(Group.id == group_id)
        .values(total_expense=Group.total_expense + delta)
        .execution_options(synchronize_session=False)
    )


def get_entry(group_id, account_id, entry_id):
    authorize(group_id, account_id, VIEW)
    entry = LedgerEntry.query.filter_by(id=entry_id, group_id=group_id).first()
    if entry is None:
        raise NotFound('Entry not found')
    return entry


def list_entries(group_id, account_id):
    authorize(group_id, account_id, VIEW)
    return (LedgerEntry.query
            .filter_by(group_id=group_id)
            .order_by(LedgerEntry.entry_date.desc(), LedgerEntry.id.desc())
            .all())


def record_entry(group_id, account_id, payer_id, participant_ids, amount, category, title,
                 entry_date=None, note=None, attachment_url=None):
    """Store a group expense and fold its split into the pair balances."""
    amount = to_money(amount)
    participants = parse_member_ids(participant_ids)
    payer_id = parse_id(payer_id, 'payer id')
    category = require_text(category, 'Category')
    title = require_text(title, 'Title')
    entry_date = parse_date(entry_date)

    with group_transaction(group_id) as group:
        authorize(group_id, account_id, RECORD, group)
        require_members(group, [payer_id] + participants)

        shares = split_shares(amount, participants)
        entry = LedgerEntry(group_id=group_id, payer_id=payer_id, amount=amount,
                            participants=participants, share_details=share_details(shares),
                            category=category, title=title, entry_date=entry_date,
                            note=optional_text(note), attachment_url=optional_text(attachment_url))
        db.session.add(entry)
        apply_entry(entry)
        _bump_total(group_id, amount)

    logger.info("Entry %s of %s recorded in group %s", entry.id, amount, group_id)
    notify_group(group_id)
    return entry


def edit_entry(group_id, account_id, entry_id, fields):
    """Apply ``fields`` to an entry.

    Title, category, date, note and attachment changes leave balances alone.
    A new amount, payer or participant list reverses the old split and folds
    in the new one inside the same transaction.
    """
    unknown = set(fields) - set(FINANCIAL_FIELDS) - set(COSMETIC_FIELDS)
    if unknown:
        raise InvalidPayload(f"Unknown field(s): {', '.join(sorted(unknown))}")

    with group_transaction(group_id) as group:
        authorize(group_id, account_id, RECORD, group)
        entry = LedgerEntry.query.filter_by(id=entry_id, group_id=group_id).first()
        if entry is None:
            raise NotFound('Entry not found')

        if any(key in fields for key in FINANCIAL_FIELDS):
            amount = to_money(fields['amount']) if 'amount' in fields else entry.amount
            payer_id = parse_id(fields['payer_id'], 'payer id') if 'payer_id' in fields else entry.payer_id
            participants = (parse_member_ids(fields['participants']) if 'participants' in fields
                            else list(entry.participants))
            require_members(group, [payer_id] + participants)

            reverse_entry(entry)
            _bump_total(group_id, amount - entry.amount)

            entry.amount = amount
            entry.payer_id = payer_id
            entry.participants = participants
            entry.share_details = share_details(split_shares(amount, participants))
            apply_entry(entry)

        if 'title' in fields:
            entry.title = require_text(fields['title'], 'Title')
        if 'category' in fields:
            entry.category = require_text(fields['category'], 'Category')
        if 'date' in fields:
            entry.entry_date = parse_date(fields['date'])
        if 'note' in fields:
            entry.note = optional_text(fields['note'])
        if 'attachment_url' in fields:
            entry.attachment_url = optional_text(fields['attachment_url'])

    logger.info("Entry %s updated in group %s", entry_id, group_id)
    notify_group(group_id)
    return entry


def delete_entry(group_id, account_id, entry_id):
    with group_transaction(group_id) as group:
        authorize(group_id, account_id, RECORD, group)
        entry = LedgerEntry.query.filter_by(id=entry_id, group_id=group_id).first()
        if entry is None:
            raise NotFound('Entry not found')

        reverse_entry(entry)
        _bump_total(group_id, -entry.amount)
        data = entry.to_dict()
        db.session.delete(entry)

    logger.info("Entry %s deleted from group %s", entry_id, group_id)
    notify_group(group_id)
    return data

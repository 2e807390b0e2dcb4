"""Group membership gate and the invitation state machine.

Invitations move PENDING -> ACCEPTED or PENDING -> REJECTED once; both
are terminal. A rejected account can be invited again, which opens a new
PENDING invitation.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from splitledger.db import db
from splitledger.errors import (AlreadyMember, DuplicateInvitation, InvalidTransition, NotAMember, NotAuthorized,
                                NotFound, OutstandingBalance)
from splitledger.helper.locking import group_transaction
from splitledger.helper.payloads import optional_text, require_text
from splitledger.models import Account, Group, Invitation, Member, PairBalance
from splitledger.models.invitation import ACCEPTED, PENDING, REJECTED
from splitledger.websocket import notify_accounts, notify_group

logger = logging.getLogger(__name__)

VIEW = 'view'
RECORD = 'record'
SETTLE = 'settle'
INVITE = 'invite'
RENAME = 'rename'
LEAVE = 'leave'
REMOVE_MEMBER = 'remove_member'
DELETE_GROUP = 'delete_group'

OWNER_ACTIONS = {REMOVE_MEMBER, DELETE_GROUP}


def get_group(group_id):
    group = db.session.get(Group, group_id)
    if group is None:
        raise NotFound('Group not found')
    return group


def get_account(account_id):
    account = db.session.get(Account, account_id)
    if account is None:
        raise NotFound('Account not found')
    return account


def member_for_account(account_id):
    return Member.query.filter_by(account_id=account_id).first()


def ensure_member(account):
    member = member_for_account(account.id)
    if member is None:
        member = Member(account_id=account.id, display_name=account.username,
                        image_url=account.profile_picture)
        db.session.add(member)
        db.session.flush()
    return member


def authorize(group_id, account_id, action, group=None):
    """Return the caller's Member if it may perform ``action`` on the group."""
    if group is None:
        group = get_group(group_id)
    member = member_for_account(account_id)
    if member is None or not group.has_member(member.id):
        raise NotAMember()
    if action in OWNER_ACTIONS and group.owner_id != member.id:
        raise NotAuthorized('Only the group owner can do this')
    return member


def require_members(group, member_ids):
    for member_id in member_ids:
        if not group.has_member(member_id):
            raise NotAMember(f"Member {member_id} is not in this group")


def create_group(account_id, name, image_url=None, category=None):
    name = require_text(name, "Group name")

    account = get_account(account_id)
    try:
        member = ensure_member(account)
        group = Group(name=name, image_url=optional_text(image_url),
                      category=optional_text(category) or 'NONE', owner_id=member.id,
                      total_expense=0)
        group.members.append(member)
        db.session.add(group)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Group %s created by account %s", group.id, account_id)
    return group


def list_groups(account_id):
    member = member_for_account(account_id)
    if member is None:
        return []
    return sorted(member.groups, key=lambda group: group.id)


def rename_group(group_id, account_id, name):
    name = require_text(name, "Group name")

    with group_transaction(group_id) as group:
        authorize(group_id, account_id, RENAME, group)
        group.name = name

    notify_group(group_id)
    return group


def delete_group(group_id, account_id):
    with group_transaction(group_id) as group:
        authorize(group_id, account_id, DELETE_GROUP, group)
        account_ids = [member.account_id for member in group.members]
        db.session.delete(group)

    logger.info("Group %s deleted by account %s", group_id, account_id)
    notify_accounts(account_ids, 'groupDeleted', {'group_id': group_id})


def _detach(group, member_id):
    if member_id == group.owner_id:
        raise NotAuthorized('The group owner cannot leave the group')
    member = db.session.get(Member, member_id)
    if member is None or not group.has_member(member_id):
        raise NotAMember(f"Member {member_id} is not in this group")

    outstanding = (PairBalance.query
                   .filter(PairBalance.group_id == group.id,
                           or_(PairBalance.debtor_id == member_id, PairBalance.creditor_id == member_id))
                   .first())
    if outstanding is not None:
        raise OutstandingBalance()

    group.members.remove(member)
    return member


def remove_member(group_id, account_id, member_id):
    with group_transaction(group_id) as group:
        authorize(group_id, account_id, REMOVE_MEMBER, group)
        member = _detach(group, member_id)
        removed_account_id = member.account_id

    logger.info("Member %s removed from group %s", member_id, group_id)
    notify_group(group_id)
    notify_accounts([removed_account_id], 'removedFromGroup', {'group_id': group_id})


def leave_group(group_id, account_id):
    with group_transaction(group_id) as group:
        member = authorize(group_id, account_id, LEAVE, group)
        _detach(group, member.id)

    logger.info("Account %s left group %s", account_id, group_id)
    notify_group(group_id)


def send_invitation(group_id, account_id, receiver_account_id):
    with group_transaction(group_id) as group:
        sender = authorize(group_id, account_id, INVITE, group)
        receiver = get_account(receiver_account_id)

        receiver_member = member_for_account(receiver.id)
        if receiver_member is not None and group.has_member(receiver_member.id):
            raise AlreadyMember()

        pending = Invitation.query.filter_by(group_id=group_id, receiver_id=receiver.id, status=PENDING).first()
        if pending is not None:
            raise DuplicateInvitation()

        invitation = Invitation(group_id=group_id, sender_id=sender.id, receiver_id=receiver.id, status=PENDING)
        db.session.add(invitation)

    logger.info("Invitation %s sent to account %s for group %s", invitation.id, receiver_account_id, group_id)
    notify_accounts([invitation.receiver_id], 'invitationReceived', {
        'message': f"You got an invitation from {invitation.sender.display_name}",
        'invitation': invitation.to_dict(),
    })
    return invitation


def list_invitations(account_id, status=PENDING):
    query = Invitation.query.filter_by(receiver_id=account_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()


def _answer_invitation(invitation_id, account_id, status):
    invitation = db.session.get(Invitation, invitation_id)
    if invitation is None:
        raise NotFound('Invitation not found')

    with group_transaction(invitation.group_id) as group:
        invitation = Invitation.query.filter_by(id=invitation_id).populate_existing().first()
        if invitation.receiver_id != account_id:
            raise NotAuthorized('Only the invited account can answer this invitation')
        if not invitation.is_pending:
            raise InvalidTransition()

        invitation.status = status
        invitation.responded_at = datetime.now(timezone.utc)

        if status == ACCEPTED:
            member = ensure_member(get_account(account_id))
            if not group.has_member(member.id):
                group.members.append(member)

    logger.info("Invitation %s %s", invitation_id, status.lower())
    return invitation


def accept_invitation(invitation_id, account_id):
    invitation = _answer_invitation(invitation_id, account_id, ACCEPTED)
    notify_group(invitation.group_id)
    return invitation


def reject_invitation(invitation_id, account_id):
    invitation = _answer_invitation(invitation_id, account_id, REJECTED)
    notify_accounts([invitation.sender.account_id], 'invitationRejected', invitation.to_dict())
    return invitation

from flask import Blueprint, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from splitledger.api import database_error
from splitledger.errors import InvalidPayload
from splitledger.helper.auth import login_required
from splitledger.helper.membership import accept_invitation, list_invitations, reject_invitation, send_invitation
from splitledger.helper.payloads import parse_id
from splitledger.models.invitation import STATUSES

bp = Blueprint('invitations', __name__)


@bp.route('/group/<int:group_id>/invitation', methods=['POST'])
@login_required
def invite(group_id):
    data = request.get_json(silent=True) or {}
    try:
        invitation = send_invitation(group_id, g.account.id, parse_id(data.get('account_id'), 'account id'))
        return jsonify({"message": "Invitation sent", "invitation": invitation.to_dict()}), 201
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/invitations', methods=['GET'])
@login_required
def get_invitations():
    status = request.args.get('status', 'PENDING').upper()
    if status != 'ALL' and status not in STATUSES:
        raise InvalidPayload('Unknown invitation status')
    invitations = list_invitations(g.account.id, None if status == 'ALL' else status)
    return jsonify({"invitations": [invitation.to_dict() for invitation in invitations]}), 200


@bp.route('/invitation/<int:invitation_id>/accept', methods=['POST'])
@login_required
def accept(invitation_id):
    try:
        invitation = accept_invitation(invitation_id, g.account.id)
        return jsonify({"message": "Invitation accepted", "invitation": invitation.to_dict()}), 200
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/invitation/<int:invitation_id>/reject', methods=['POST'])
@login_required
def reject(invitation_id):
    try:
        invitation = reject_invitation(invitation_id, g.account.id)
        return jsonify({"message": "Invitation rejected", "invitation": invitation.to_dict()}), 200
    except SQLAlchemyError as e:
        return database_error(e)

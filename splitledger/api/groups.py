from flask import Blueprint, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from splitledger.api import database_error
from splitledger.db import db
from splitledger.helper.auth import login_required
from splitledger.helper.balances import (calculate_member_expenditures, group_balances, member_positions,
                                         settle_up)
from splitledger.helper.membership import (VIEW, authorize, create_group, delete_group, get_group, leave_group,
                                           list_groups, remove_member, rename_group)
from splitledger.helper.money import format_money
from splitledger.models import LedgerEntry

bp = Blueprint('groups', __name__)


@bp.route('/group', methods=['POST'])
@login_required
def add_group():
    data = request.get_json(silent=True) or {}
    try:
        group = create_group(g.account.id, data.get('name'), data.get('image_url'), data.get('category'))
        return jsonify({"message": "Group added", "group": group.to_dict()}), 201
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/groups', methods=['GET'])
@login_required
def get_groups():
    return jsonify({"groups": [group.to_dict() for group in list_groups(g.account.id)]}), 200


@bp.route('/group/<int:group_id>', methods=['GET'])
@login_required
def get_group_details(group_id):
    group = get_group(group_id)
    authorize(group_id, g.account.id, VIEW, group)
    return jsonify({"group": group.to_dict()}), 200


@bp.route('/group/<int:group_id>/update_group_name', methods=['PUT'])
@login_required
def update_group_name(group_id):
    data = request.get_json(silent=True) or {}
    try:
        group = rename_group(group_id, g.account.id, data.get('new_group_name'))
        return jsonify({"message": "Group name updated", "group": group.to_dict()}), 200
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/group/<int:group_id>', methods=['DELETE'])
@login_required
def remove_group(group_id):
    try:
        delete_group(group_id, g.account.id)
        return jsonify({"message": "Group deleted"}), 200
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/group/<int:group_id>/members', methods=['GET'])
@login_required
def get_members(group_id):
    group = get_group(group_id)
    authorize(group_id, g.account.id, VIEW, group)
    return jsonify({"name": group.name, "members": [member.to_dict() for member in group.members]}), 200


@bp.route('/group/<int:group_id>/member/<int:member_id>', methods=['DELETE'])
@login_required
def delete_member(group_id, member_id):
    try:
        remove_member(group_id, g.account.id, member_id)
        return jsonify({"message": "Member removed"}), 200
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/group/<int:group_id>/leave', methods=['POST'])
@login_required
def leave(group_id):
    try:
        leave_group(group_id, g.account.id)
        return jsonify({"message": "Left group"}), 200
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/group/<int:group_id>/balances', methods=['GET'])
@login_required
def get_balances(group_id):
    authorize(group_id, g.account.id, VIEW)
    balances = group_balances(group_id)
    positions = member_positions(balances)
    return jsonify({
        "balances": [balance.to_dict() for balance in balances],
        "positions": {str(member_id): format_money(amount) for member_id, amount in positions.items()},
    }), 200


@bp.route('/group/<int:group_id>/settle_up', methods=['GET'])
@login_required
def get_settle_up(group_id):
    authorize(group_id, g.account.id, VIEW)
    suggestions = settle_up(member_positions(group_balances(group_id)))
    return jsonify({"settlements": suggestions}), 200


@bp.route('/group/<int:group_id>/total_expenditure', methods=['GET'])
@login_required
def get_total_expenditure(group_id):
    authorize(group_id, g.account.id, VIEW)
    total_expenditure = db.session.query(db.func.sum(LedgerEntry.amount)).filter_by(group_id=group_id).scalar() or 0
    return jsonify({"total_expenditure": format_money(total_expenditure)}), 200


@bp.route('/group/<int:group_id>/member_expenditure', methods=['GET'])
@login_required
def get_member_expenditures(group_id):
    authorize(group_id, g.account.id, VIEW)
    entries = LedgerEntry.query.filter_by(group_id=group_id).all()
    expenditures = calculate_member_expenditures(entries)
    return jsonify({"member_expenditure": {str(member_id): amount for member_id, amount in expenditures.items()}}), 200

from flask import Blueprint, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from splitledger.api import database_error
from splitledger.helper.auth import login_required
from splitledger.helper.entries import delete_entry, edit_entry, get_entry, list_entries, record_entry
from splitledger.helper.payloads import process_entry_data

bp = Blueprint('entries', __name__)


@bp.route('/group/<int:group_id>/entry', methods=['POST'])
@login_required
def add_entry(group_id):
    data = request.get_json(silent=True) or {}
    try:
        entry = record_entry(group_id, g.account.id, **process_entry_data(data))
        return jsonify({"message": "Entry added", "entry": entry.to_dict()}), 201
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/group/<int:group_id>/entry/<int:entry_id>', methods=['PUT'])
@login_required
def update_entry(group_id, entry_id):
    data = request.get_json(silent=True) or {}
    try:
        entry = edit_entry(group_id, g.account.id, entry_id, data)
        return jsonify({"message": "Entry updated", "entry": entry.to_dict()}), 200
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/group/<int:group_id>/entry/<int:entry_id>', methods=['DELETE'])
@login_required
def remove_entry(group_id, entry_id):
    try:
        entry = delete_entry(group_id, g.account.id, entry_id)
        return jsonify({"message": "Entry deleted", "entry": entry}), 200
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/group/<int:group_id>/entry/<int:entry_id>', methods=['GET'])
@login_required
def get_group_entry(group_id, entry_id):
    entry = get_entry(group_id, g.account.id, entry_id)
    return jsonify({"entry": entry.to_dict()}), 200


@bp.route('/group/<int:group_id>/entries', methods=['GET'])
@login_required
def get_group_entries(group_id):
    entries = list_entries(group_id, g.account.id)
    return jsonify({"entries": [entry.to_dict() for entry in entries]}), 200

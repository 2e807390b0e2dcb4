from flask import Blueprint, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from splitledger.api import database_error
from splitledger.helper.auth import login_required
from splitledger.helper.settlements import delete_settlement, get_settlement, list_settlements, settle

bp = Blueprint('settlements', __name__)


@bp.route('/group/<int:group_id>/settlement', methods=['POST'])
@login_required
def add_settlement(group_id):
    data = request.get_json(silent=True) or {}
    try:
        settlement = settle(group_id, g.account.id, data.get('payee_id'), data.get('amount'), data.get('note'))
        return jsonify({"message": "Settlement recorded", "settlement": settlement.to_dict()}), 201
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/group/<int:group_id>/settlement/<int:settlement_id>', methods=['DELETE'])
@login_required
def remove_settlement(group_id, settlement_id):
    try:
        settlement = delete_settlement(group_id, g.account.id, settlement_id)
        return jsonify({"message": "Settlement deleted", "settlement": settlement}), 200
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/group/<int:group_id>/settlement/<int:settlement_id>', methods=['GET'])
@login_required
def get_group_settlement(group_id, settlement_id):
    settlement = get_settlement(group_id, g.account.id, settlement_id)
    return jsonify({"settlement": settlement.to_dict()}), 200


@bp.route('/group/<int:group_id>/settlements', methods=['GET'])
@login_required
def get_group_settlements(group_id):
    settlements = list_settlements(group_id, g.account.id)
    return jsonify({"settlements": [settlement.to_dict() for settlement in settlements]}), 200

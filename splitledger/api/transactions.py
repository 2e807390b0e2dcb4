from flask import Blueprint, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from splitledger.api import database_error
from splitledger.helper.auth import login_required
from splitledger.helper.payloads import process_transaction_data
from splitledger.helper.personal import add_transaction, delete_transaction, list_transactions, monthly_history

bp = Blueprint('transactions', __name__)


@bp.route('/transaction', methods=['POST'])
@login_required
def add_personal_transaction():
    data = request.get_json(silent=True) or {}
    try:
        transaction = add_transaction(g.account.id, **process_transaction_data(data))
        return jsonify({"message": "Transaction added", "transaction": transaction.to_dict()}), 201
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/transaction/<int:transaction_id>', methods=['DELETE'])
@login_required
def remove_personal_transaction(transaction_id):
    try:
        transaction = delete_transaction(g.account.id, transaction_id)
        return jsonify({"message": "Transaction deleted", "transaction": transaction}), 200
    except SQLAlchemyError as e:
        return database_error(e)


@bp.route('/transactions', methods=['GET'])
@login_required
def get_personal_transactions():
    year = request.args.get('year', type=int)
    month = request.args.get('month', type=int)
    transactions = list_transactions(g.account.id, year, month)
    return jsonify({"transactions": [transaction.to_dict() for transaction in transactions]}), 200


@bp.route('/history', methods=['GET'])
@login_required
def get_monthly_history():
    return jsonify({"history": [row.to_dict() for row in monthly_history(g.account.id)]}), 200

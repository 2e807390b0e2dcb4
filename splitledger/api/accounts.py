from flask import Blueprint, g, jsonify, request

from splitledger.helper.accounts import authenticate, search_accounts, send_verification, verify_otp
from splitledger.helper.auth import clear_token_cookie, create_access_token, login_required, set_token_cookie

bp = Blueprint('accounts', __name__)


@bp.route('/register', methods=['POST'])
def register_account():
    data = request.get_json(silent=True) or {}
    send_verification(data.get('username'), data.get('email'), data.get('password'),
                      data.get('profile_picture'))
    return jsonify({"message": "OTP Sent Successfully"}), 200


@bp.route('/verify_otp', methods=['POST'])
def verify_account():
    data = request.get_json(silent=True) or {}
    account = verify_otp(data.get('email'), data.get('otp'))
    return jsonify({"message": "User registered successfully", "account": account.to_dict()}), 201


@bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    account = authenticate(data.get('username_or_email'), data.get('password'))
    response = jsonify({"message": "Login successful", "account": account.to_dict()})
    return set_token_cookie(response, create_access_token(account)), 200


@bp.route('/logout', methods=['POST'])
def logout():
    return clear_token_cookie(jsonify({"message": "Logged out"})), 200


@bp.route('/me', methods=['GET'])
@login_required
def get_me():
    return jsonify({"account": g.account.to_dict()}), 200


@bp.route('/accounts/search', methods=['GET'])
@login_required
def search():
    accounts = search_accounts(request.args.get('filter', ''), exclude_id=g.account.id)
    return jsonify({"accounts": [account.to_public_dict() for account in accounts]}), 200

from flask import current_app, jsonify

from splitledger.db import db


def database_error(e):
    db.session.rollback()
    current_app.logger.exception("Database error")
    return jsonify({"message": "Database error occurred", "error": str(e)}), 500

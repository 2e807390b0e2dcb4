import logging

from flask import Flask, jsonify
from flask.logging import default_handler
from flask_cors import CORS

from splitledger.config import Config
from splitledger.db import db
from splitledger.errors import LedgerError
from splitledger.helper.otp import LoggingOtpSender
from splitledger.migrate import migrate
from splitledger.websocket import socketio
from splitledger import models  # noqa: F401  registers tables with the metadata
from splitledger.api.accounts import bp as accounts_bp
from splitledger.api.groups import bp as groups_bp
from splitledger.api.entries import bp as entries_bp
from splitledger.api.settlements import bp as settlements_bp
from splitledger.api.invitations import bp as invitations_bp
from splitledger.api.transactions import bp as transactions_bp
from splitledger.api import sockets  # noqa: F401  registers socket handlers


def configure_logging(app):
    logger = logging.getLogger('splitledger')
    logger.setLevel(app.config['LOG_LEVEL'])
    if default_handler not in logger.handlers:
        logger.addHandler(default_handler)


def register_error_handlers(app):
    @app.errorhandler(LedgerError)
    def handle_ledger_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            app.logger.error("%s: %s", error.kind, error.message)
        return jsonify(error.to_dict()), error.status_code


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)
    configure_logging(app)
    db.init_app(app)
    migrate.init_app(app, db)
    socketio.init_app(app, cors_allowed_origins=app.config['CORS_ORIGINS'])
    register_error_handlers(app)
    app.extensions.setdefault('otp_sender', LoggingOtpSender())

    app.register_blueprint(accounts_bp, url_prefix='/api')
    app.register_blueprint(groups_bp, url_prefix='/api')
    app.register_blueprint(entries_bp, url_prefix='/api')
    app.register_blueprint(settlements_bp, url_prefix='/api')
    app.register_blueprint(invitations_bp, url_prefix='/api')
    app.register_blueprint(transactions_bp, url_prefix='/api')

    return app


if __name__ == '__main__':
    app = create_app()
    socketio.run(app, debug=True)

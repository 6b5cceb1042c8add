# loyalty_wallet/init/blueprints.py

"""
Blueprint Registration

Register the wallet blueprints and CLI commands.
"""

import logging

logger = logging.getLogger(__name__)


def init_blueprints(app):
    """
    Register blueprints with the Flask application.

    Args:
        app: The Flask application instance.
    """
    from loyalty_wallet.wallet_pass.routes import public_wallet_bp
    app.register_blueprint(public_wallet_bp)


def init_cli_commands(app):
    """
    Register CLI commands with the Flask application.

    Args:
        app: The Flask application instance.
    """
    from loyalty_wallet.cli import wallet as wallet_cli
    app.cli.add_command(wallet_cli)

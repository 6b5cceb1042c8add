# loyalty_wallet/__init__.py

"""
Loyalty Wallet Application

Flask application factory for the wallet pass service.
"""

import logging

from flask import Flask

logger = logging.getLogger(__name__)


def create_app(config_object='loyalty_wallet.config.Config', card_repository=None):
    """
    Application factory function for creating a Flask app instance.

    Args:
        config_object: The configuration object to load (default is
            'loyalty_wallet.config.Config').
        card_repository: Optional CardRepository the wallet routes read
            cards from.

    Returns:
        A configured Flask application instance.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    # SECRET_KEY is mandatory
    if not app.config.get('SECRET_KEY'):
        raise RuntimeError('SECRET_KEY must be set')

    from loyalty_wallet.init import (
        init_logging,
        init_services,
        init_blueprints,
        init_cli_commands,
    )

    init_logging(app)
    init_services(app, card_repository=card_repository)
    init_blueprints(app)
    init_cli_commands(app)

    return app

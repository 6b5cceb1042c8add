# loyalty_wallet/init/__init__.py

"""
Application Initialization Package

Modular initialization functions for the Flask application.
"""

from loyalty_wallet.init.logging import init_logging
from loyalty_wallet.init.services import init_services
from loyalty_wallet.init.blueprints import init_blueprints, init_cli_commands

__all__ = [
    'init_logging',
    'init_services',
    'init_blueprints',
    'init_cli_commands',
]

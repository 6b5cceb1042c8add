# loyalty_wallet/init/logging.py

"""
Logging Configuration

Deployed apps get the dictConfig layout from log_config, with rotating
files under WALLET_LOG_DIR. Under TESTING everything goes to the console
so the suite never writes log files.
"""

import logging
import logging.config
import os

from loyalty_wallet.log_config.logging_config import LOG_DIR, build_logging_config

WALLET_LOGGER = 'loyalty_wallet'


def _wallet_level(app) -> str:
    level = str(app.config.get('WALLET_LOG_LEVEL') or 'INFO').upper()
    if not isinstance(logging.getLevelName(level), int):
        app.logger.warning(f"Unknown WALLET_LOG_LEVEL {level!r}, using INFO")
        return 'INFO'
    return level


def _console_logging(app, level: str) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(name)s - %(message)s'))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(logging.WARNING)

    logging.getLogger(WALLET_LOGGER).setLevel(level)
    app.logger.handlers = [handler]
    app.logger.setLevel(logging.DEBUG if app.debug else logging.INFO)


def init_logging(app):
    """
    Initialize logging for the Flask application.

    Args:
        app: The Flask application instance.

    Returns:
        The directory log files are written to, or None under TESTING.
    """
    level = _wallet_level(app)
    if app.config.get('TESTING'):
        _console_logging(app, level)
        return None

    log_dir = app.config.get('WALLET_LOG_DIR') or LOG_DIR
    os.makedirs(log_dir, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_dir, level))
    app.logger.setLevel(logging.INFO if app.debug else logging.WARNING)
    return log_dir

# loyalty_wallet/log_config/logging_config.py

"""
Logging configuration for the application.

Applied with logging.config.dictConfig outside of testing. Wallet signing
and Google API traffic get their own rotating files so that certificate and
upstream failures are easy to find.
"""

import logging.handlers

LOG_DIR = 'logs'


def build_logging_config(log_dir=LOG_DIR, wallet_level='INFO'):
    """Return the dictConfig mapping with log files under `log_dir`."""
    return {
        'version': 1,
        'disable_existing_loggers': False,

        'formatters': {
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s'
            },
            'simple': {
                'format': '%(asctime)s [%(levelname)s] %(message)s'
            },
        },

        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'simple',
                'level': 'INFO',
            },
            'signing_file': {
                'class': 'logging.handlers.RotatingFileHandler',
                'filename': f'{log_dir}/wallet_signing.log',
                'formatter': 'detailed',
                'level': 'INFO',
                'maxBytes': 10485760,   # 10MB
                'backupCount': 3,
                'encoding': 'utf-8'
            },
            'google_file': {
                'class': 'logging.handlers.RotatingFileHandler',
                'filename': f'{log_dir}/google_wallet.log',
                'formatter': 'detailed',
                'level': 'INFO',
                'maxBytes': 10485760,   # 10MB
                'backupCount': 3,
                'encoding': 'utf-8'
            },
            'errors_file': {
                'class': 'logging.handlers.RotatingFileHandler',
                'filename': f'{log_dir}/errors.log',
                'formatter': 'detailed',
                'level': 'WARNING',
                'maxBytes': 26214400,   # 25MB
                'backupCount': 3,
                'encoding': 'utf-8'
            }
        },

        'loggers': {
            'loyalty_wallet.wallet_pass.signing': {
                'handlers': ['console', 'signing_file', 'errors_file'],
                'level': wallet_level,
                'propagate': False
            },
            'loyalty_wallet.wallet_pass.generators.google': {
                'handlers': ['console', 'google_file', 'errors_file'],
                'level': wallet_level,
                'propagate': False
            },
            'loyalty_wallet.wallet_pass': {
                'handlers': ['console', 'errors_file'],
                'level': wallet_level,
                'propagate': False
            },
            'googleapiclient.discovery': {
                'handlers': ['google_file'],
                'level': 'WARNING',     # Discovery chatter is noise
                'propagate': False
            },
            'werkzeug': {
                'handlers': ['console'],
                'level': 'ERROR',
                'propagate': False
            }
        },

        'root': {
            'handlers': ['console', 'errors_file'],
            'level': 'WARNING',
        }
    }

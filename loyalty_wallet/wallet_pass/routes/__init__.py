# loyalty_wallet/wallet_pass/routes/__init__.py

"""
Wallet Pass Routes

- Apple .pkpass download and Google save-link endpoints
- Wallet configuration health endpoint
"""

from .public import public_wallet_bp

__all__ = ['public_wallet_bp']

# loyalty_wallet/wallet_pass/services/__init__.py

"""
Wallet Pass Services

- PassService: card lookup plus Apple/Google pass generation
"""

from .pass_service import GooglePassResult, PassService

__all__ = ['GooglePassResult', 'PassService']

# loyalty_wallet/wallet_pass/errors.py

"""
Wallet Pass Errors

Exception taxonomy shared by both wallet pipelines. Routes map each class to
an HTTP response; everything below WalletError carries a stable error_code.
"""

from typing import Iterable, List, Optional


class WalletError(Exception):
    """Base exception for wallet pass errors."""

    error_code = 'WALLET_ERROR'

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code


class ConfigurationError(WalletError):
    """Raised when credentials or identifiers are missing or malformed."""

    error_code = 'CONFIGURATION_ERROR'

    def __init__(self, message: str, missing: Iterable[str] = ()):
        super().__init__(message)
        self.missing: List[str] = list(missing)


class ValidationError(WalletError):
    """Raised when card data or a pass document fails structural validation."""

    error_code = 'VALIDATION_ERROR'

    def __init__(self, message: str, fields: Iterable[str] = ()):
        super().__init__(message)
        self.fields: List[str] = list(fields)


class SigningError(WalletError):
    """Raised when a signature cannot be produced."""

    error_code = 'SIGNING_ERROR'


class NetworkError(WalletError):
    """Raised when the remote wallet API is unreachable or answers unexpectedly."""

    error_code = 'NETWORK_ERROR'

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class SizeLimitError(WalletError):
    """Raised when a token payload exceeds the platform size ceiling."""

    error_code = 'SIZE_LIMIT_EXCEEDED'

    def __init__(self, message: str, size: int, limit: int):
        super().__init__(message)
        self.size = size
        self.limit = limit


class NotFoundError(WalletError):
    """Raised when a requested card does not exist."""

    error_code = 'NOT_FOUND'

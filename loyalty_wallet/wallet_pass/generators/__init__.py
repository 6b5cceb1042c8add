# loyalty_wallet/wallet_pass/generators/__init__.py

"""
Wallet Pass Generators

This package contains generators for the two wallet platforms:
- Apple Wallet (.pkpass bundles with a detached PKCS#7 signature)
- Google Wallet (loyalty class/object upserts against the Wallet Objects API)

Both consume the same PassDescriptor, so pass content stays in parity.
"""

from .apple import ApplePassGenerator, build_manifest, pkpass_filename, validate_pass_json
from .google import (
    LoyaltyObjectManager, LoyaltySyncResult, UpsertResult,
    build_loyalty_class, build_loyalty_object, build_wallet_client,
    derive_class_id, derive_object_id, sanitize_class_suffix, sanitize_object_token
)

__all__ = [
    'ApplePassGenerator',
    'build_manifest',
    'pkpass_filename',
    'validate_pass_json',
    'LoyaltyObjectManager',
    'LoyaltySyncResult',
    'UpsertResult',
    'build_loyalty_class',
    'build_loyalty_object',
    'build_wallet_client',
    'derive_class_id',
    'derive_object_id',
    'sanitize_class_suffix',
    'sanitize_object_token',
]

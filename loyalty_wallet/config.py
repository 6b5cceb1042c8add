# loyalty_wallet/config.py

"""
Configuration Module

Defines the Flask configuration classes and the immutable WalletSettings
value handed to every wallet component. Values are loaded primarily from
environment variables (a local .env file is honoured via python-dotenv).
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 'yes')


class Config:
    """Application configuration settings."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
    TESTING = False

    # Deployment
    WALLET_ENVIRONMENT = os.getenv('WALLET_ENVIRONMENT', 'development')
    WALLET_BASE_URL = os.getenv('WALLET_BASE_URL', 'http://localhost:5000')
    WALLET_STRICT_VALIDATION = _env_bool('WALLET_STRICT_VALIDATION', 'true')
    WALLET_DEFAULT_LOCALE = os.getenv('WALLET_DEFAULT_LOCALE', 'en-US')
    WALLET_CARDS_FILE = os.getenv('WALLET_CARDS_FILE')

    # Logging
    WALLET_LOG_DIR = os.getenv('WALLET_LOG_DIR', 'logs')
    WALLET_LOG_LEVEL = os.getenv('WALLET_LOG_LEVEL', 'INFO')

    # Apple Wallet
    APPLE_TEAM_IDENTIFIER = os.getenv('APPLE_TEAM_IDENTIFIER')
    APPLE_PASS_TYPE_IDENTIFIER = os.getenv('APPLE_PASS_TYPE_IDENTIFIER')
    APPLE_ORGANIZATION_NAME = os.getenv('APPLE_ORGANIZATION_NAME', 'RewardJar')
    APPLE_CERT_BASE64 = os.getenv('APPLE_CERT_BASE64')
    APPLE_KEY_BASE64 = os.getenv('APPLE_KEY_BASE64')
    APPLE_WWDR_BASE64 = os.getenv('APPLE_WWDR_BASE64')
    APPLE_CERT_PATH = os.getenv('APPLE_CERT_PATH')
    APPLE_KEY_PATH = os.getenv('APPLE_KEY_PATH')
    APPLE_WWDR_PATH = os.getenv('APPLE_WWDR_PATH')
    APPLE_CERT_PASSWORD = os.getenv('APPLE_CERT_PASSWORD', '')
    APPLE_WEB_SERVICE_URL = os.getenv('APPLE_WEB_SERVICE_URL', '')
    OPENSSL_BIN = os.getenv('OPENSSL_BIN', 'openssl')
    APPLE_SIGNING_TIMEOUT = float(os.getenv('APPLE_SIGNING_TIMEOUT', 5))

    # Google Wallet
    GOOGLE_WALLET_ISSUER_ID = os.getenv('GOOGLE_WALLET_ISSUER_ID')
    GOOGLE_SERVICE_ACCOUNT_EMAIL = os.getenv('GOOGLE_SERVICE_ACCOUNT_EMAIL')
    GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY = os.getenv('GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY')
    GOOGLE_SERVICE_ACCOUNT_FILE = os.getenv('GOOGLE_SERVICE_ACCOUNT_FILE')
    GOOGLE_WALLET_CLASS_SUFFIX_STAMP = os.getenv('GOOGLE_WALLET_CLASS_SUFFIX_STAMP')
    GOOGLE_WALLET_CLASS_SUFFIX_MEMBERSHIP = os.getenv('GOOGLE_WALLET_CLASS_SUFFIX_MEMBERSHIP')
    GOOGLE_WALLET_ORIGINS = os.getenv('GOOGLE_WALLET_ORIGINS', '')
    GOOGLE_API_TIMEOUT = float(os.getenv('GOOGLE_API_TIMEOUT', 10))


class TestingConfig(Config):
    """Configuration used by the test suite."""
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    WALLET_ENVIRONMENT = 'testing'


def normalize_private_key(value: Optional[str]) -> Optional[str]:
    """Undo the escaping private keys pick up when stored in env vars."""
    if not value:
        return value
    key = value.strip().strip('"\'')
    if '\\n' in key:
        key = key.replace('\\n', '\n')
    return key


@dataclass(frozen=True)
class WalletSettings:
    """
    Immutable wallet configuration.

    Built once from the Flask config (or any mapping) and passed explicitly
    to each component, so concurrent requests can share it without locking.
    """
    environment: str = 'development'
    base_url: str = 'http://localhost:5000'
    strict_validation: bool = True
    default_locale: str = 'en-US'

    apple_team_identifier: Optional[str] = None
    apple_pass_type_identifier: Optional[str] = None
    apple_organization_name: str = 'RewardJar'
    apple_cert_base64: Optional[str] = None
    apple_key_base64: Optional[str] = None
    apple_wwdr_base64: Optional[str] = None
    apple_cert_path: Optional[str] = None
    apple_key_path: Optional[str] = None
    apple_wwdr_path: Optional[str] = None
    apple_cert_password: str = ''
    apple_web_service_url: str = ''
    openssl_bin: str = 'openssl'
    apple_signing_timeout: float = 5.0

    google_issuer_id: Optional[str] = None
    google_service_account_email: Optional[str] = None
    google_service_account_private_key: Optional[str] = None
    google_service_account_file: Optional[str] = None
    google_class_suffix_stamp: Optional[str] = None
    google_class_suffix_membership: Optional[str] = None
    google_origins: str = ''
    google_api_timeout: float = 10.0

    @property
    def is_production(self) -> bool:
        return self.environment == 'production'

    @property
    def apple_cert_is_p12(self) -> bool:
        """A .p12 certificate bundle carries its own private key."""
        if self.apple_cert_base64 or not self.apple_cert_path:
            return False
        return self.apple_cert_path.lower().endswith('.p12')

    @property
    def has_apple_credentials(self) -> bool:
        cert = self.apple_cert_base64 or self.apple_cert_path
        key = self.apple_key_base64 or self.apple_key_path or self.apple_cert_is_p12
        wwdr = self.apple_wwdr_base64 or self.apple_wwdr_path
        return bool(cert and key and wwdr)

    @property
    def has_google_credentials(self) -> bool:
        has_key = bool(self.google_service_account_email and self.google_service_account_private_key)
        return bool(self.google_issuer_id and (has_key or self.google_service_account_file))

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> 'WalletSettings':
        """
        Build settings from a Flask config or os.environ style mapping.

        Keys follow the environment variable names declared on Config.
        """
        key_map = {
            'environment': 'WALLET_ENVIRONMENT',
            'base_url': 'WALLET_BASE_URL',
            'strict_validation': 'WALLET_STRICT_VALIDATION',
            'default_locale': 'WALLET_DEFAULT_LOCALE',
            'google_issuer_id': 'GOOGLE_WALLET_ISSUER_ID',
            'google_class_suffix_stamp': 'GOOGLE_WALLET_CLASS_SUFFIX_STAMP',
            'google_class_suffix_membership': 'GOOGLE_WALLET_CLASS_SUFFIX_MEMBERSHIP',
            'google_origins': 'GOOGLE_WALLET_ORIGINS',
        }
        values = {}
        for settings_field in fields(cls):
            key = key_map.get(settings_field.name, settings_field.name.upper())
            value = config.get(key)
            if value is None:
                continue
            if settings_field.type is bool and isinstance(value, str):
                value = value.lower() in ('true', '1', 'yes')
            elif settings_field.type is float:
                value = float(value)
            values[settings_field.name] = value

        values['google_service_account_private_key'] = normalize_private_key(
            values.get('google_service_account_private_key')
        )
        return cls(**values)

    @classmethod
    def from_env(cls) -> 'WalletSettings':
        return cls.from_mapping(os.environ)

"""
Pytest configuration and shared fixtures for all tests.
"""
import os
import sys
from dataclasses import replace
from datetime import date, datetime, timezone

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from loyalty_wallet import create_app
from loyalty_wallet.config import WalletSettings
from loyalty_wallet.wallet_pass.generators.google import LoyaltyObjectManager
from loyalty_wallet.wallet_pass.repository import InMemoryCardRepository
from loyalty_wallet.wallet_pass.services import PassService
from loyalty_wallet.wallet_pass.signing import AppleSigningService, CryptographySigner

from tests.factories import (
    CAFE_LUNA_CARD_ID, GYM_CARD_ID, BusinessFactory, MembershipCardFactory, StampCardFactory,
    key_pem_bytes, make_private_key, make_signing_material
)
from tests.helpers import FakeWalletClient

TEAM_ID = 'ABCDE12345'
PASS_TYPE_ID = 'pass.com.rewardjar.loyalty'
ISSUER_ID = '3388000000012345678'
SERVICE_ACCOUNT_EMAIL = 'wallet-issuer@rewardjar-test.iam.gserviceaccount.com'


# =============================================================================
# CREDENTIALS
# =============================================================================

@pytest.fixture(scope='session')
def signing_material():
    """Pass certificate and key issued by a test WWDR authority."""
    return make_signing_material()


@pytest.fixture(scope='session')
def expired_signing_material():
    return make_signing_material(expired=True)


@pytest.fixture(scope='session')
def service_account_key():
    return make_private_key()


@pytest.fixture(scope='session')
def service_account_pem(service_account_key):
    return key_pem_bytes(service_account_key).decode('ascii')


@pytest.fixture
def wallet_settings(signing_material, service_account_pem):
    """WalletSettings with both platforms fully configured."""
    return WalletSettings(
        environment='testing',
        base_url='https://wallet.rewardjar.test',
        apple_team_identifier=TEAM_ID,
        apple_pass_type_identifier=PASS_TYPE_ID,
        google_issuer_id=ISSUER_ID,
        google_service_account_email=SERVICE_ACCOUNT_EMAIL,
        google_service_account_private_key=service_account_pem,
        **signing_material.settings_kwargs()
    )


@pytest.fixture
def unconfigured_settings():
    return WalletSettings(environment='testing', base_url='https://wallet.rewardjar.test')


@pytest.fixture
def expired_settings(wallet_settings, expired_signing_material):
    return replace(wallet_settings, **expired_signing_material.settings_kwargs())


# =============================================================================
# CARDS
# =============================================================================

@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def cafe_luna():
    """A full stamp card at Cafe Luna."""
    business = BusinessFactory(
        id='b7f3c9e2-cafe-4c1a-9d2e-000000000001',
        name='Cafe Luna',
        description='Neighbourhood espresso bar',
        contact_email='hello@cafeluna.test',
    )
    return StampCardFactory(
        customer_card_id=CAFE_LUNA_CARD_ID,
        card_name='Cafe Luna',
        business=business,
        current_stamps=10,
        stamps_required=10,
        reward_description='Free latte',
    )


@pytest.fixture
def gym_membership():
    business = BusinessFactory(id='a1b2c3d4-0000-4000-8000-000000000002', name='Iron Temple Gym')
    return MembershipCardFactory(
        customer_card_id=GYM_CARD_ID,
        business=business,
        sessions_used=5,
        total_sessions=20,
        cost=15000,
        currency='KRW',
        expiry_date=date(2030, 12, 31),
    )


@pytest.fixture
def card_repository(cafe_luna, gym_membership):
    return InMemoryCardRepository([cafe_luna, gym_membership])


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture
def fake_wallet_client():
    return FakeWalletClient()


@pytest.fixture
def make_service(card_repository, fake_wallet_client):
    """Build a PassService with in-process signing and the fake Google client."""
    def _make(settings, repository=None, client=None):
        return PassService(
            settings,
            repository or card_repository,
            apple_signer=AppleSigningService(settings, signer_factory=CryptographySigner),
            loyalty_manager=LoyaltyObjectManager(settings, client=client or fake_wallet_client),
        )
    return _make


# =============================================================================
# APPLICATION
# =============================================================================

@pytest.fixture
def app(card_repository, make_service, wallet_settings):
    """Create application for testing with both platforms configured."""
    app = create_app('loyalty_wallet.config.TestingConfig', card_repository=card_repository)
    app.extensions['wallet_settings'] = wallet_settings
    app.extensions['wallet_pass_service'] = make_service(wallet_settings)
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create CLI runner."""
    return app.test_cli_runner()

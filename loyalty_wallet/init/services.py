# loyalty_wallet/init/services.py

"""
Services Initialization

Build the wallet pass service from the app config and attach it to the app.
"""

import logging
import os

from loyalty_wallet.config import WalletSettings
from loyalty_wallet.wallet_pass.repository import InMemoryCardRepository
from loyalty_wallet.wallet_pass.services import PassService

logger = logging.getLogger(__name__)


def init_services(app, card_repository=None):
    """
    Initialize the wallet pass service.

    Args:
        app: The Flask application instance.
        card_repository: CardRepository to read cards from. When omitted,
            cards are loaded from WALLET_CARDS_FILE if it is set.
    """
    settings = WalletSettings.from_mapping(app.config)

    if card_repository is None:
        cards_file = app.config.get('WALLET_CARDS_FILE')
        if cards_file and os.path.exists(cards_file):
            card_repository = InMemoryCardRepository.from_json_file(cards_file)
        else:
            if cards_file:
                logger.warning(f"WALLET_CARDS_FILE not found at {cards_file}; starting with no cards")
            card_repository = InMemoryCardRepository()

    app.extensions['wallet_settings'] = settings
    app.extensions['wallet_pass_service'] = PassService(settings, card_repository)
    logger.info(f"Wallet pass service initialized ({settings.environment})")

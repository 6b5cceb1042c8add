# loyalty_wallet/wallet_pass/services/pass_service.py

"""
Unified Wallet Pass Service

Provides a high-level interface for turning a stored card into a wallet
pass on either platform: Apple (.pkpass bundle) or Google (save link).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from ..assembler import assemble_pass_descriptor
from ..compliance import ComplianceValidator
from ..errors import ConfigurationError, NotFoundError, ValidationError
from ..generators.apple import ApplePassGenerator
from ..generators.google import LoyaltyObjectManager, derive_object_id
from ..models import CardRecord, CardType, PassBundle, PassDescriptor
from ..repository import CardRepository
from ..signing.apple import AppleSigningService, ManifestSigner
from ..signing.save_link import SaveLinkSigner
from ...config import WalletSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GooglePassResult:
    save_url: str
    token: str
    class_id: str
    object_id: str
    created: bool
    object_body: Dict[str, Any] = field(default_factory=dict)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PassService:
    """
    Unified service for wallet pass operations.

    Collaborators are injected so each can be replaced in tests; defaults
    are built from the WalletSettings.
    """

    def __init__(
        self,
        settings: WalletSettings,
        repository: CardRepository,
        apple_signer: Optional[ManifestSigner] = None,
        loyalty_manager: Optional[LoyaltyObjectManager] = None,
        save_link_signer: Optional[SaveLinkSigner] = None,
        clock: Callable[[], datetime] = None
    ):
        self.settings = settings
        self.repository = repository
        self.clock = clock or _utc_now
        self.apple_signer = apple_signer or AppleSigningService(settings, clock=self.clock)
        self.loyalty_manager = loyalty_manager or LoyaltyObjectManager(settings)
        self.save_link_signer = save_link_signer or SaveLinkSigner(settings, clock=self.clock)
        self.validator = ComplianceValidator(settings, clock=self.clock)

    # =========================================================================
    # Card Lookup
    # =========================================================================

    def get_card(self, customer_card_id: str) -> CardRecord:
        record = self.repository.get(customer_card_id)
        if record is None:
            raise NotFoundError(f"Customer card not found: {customer_card_id}")
        return record

    def describe(self, card: Union[str, CardRecord], locale: Optional[str] = None) -> PassDescriptor:
        """Assemble the PassDescriptor for a card id or record."""
        record = self.get_card(card) if isinstance(card, str) else card
        return assemble_pass_descriptor(
            record,
            locale=locale or record.locale or self.settings.default_locale,
            now=self.clock()
        )

    # =========================================================================
    # Configuration Gates
    # =========================================================================

    def _strict_gate(self, issues) -> None:
        # Only identifier format problems block here; certificate expiry is
        # enforced by the signer itself.
        invalid = [issue for issue in issues if issue.is_error and issue.code.startswith('INVALID_')]
        if invalid:
            raise ConfigurationError(
                '; '.join(issue.message for issue in invalid),
                missing=[issue.code for issue in invalid]
            )

    def ensure_apple_ready(self) -> None:
        self.validator.require_apple()
        if self.settings.strict_validation:
            self._strict_gate(self.validator.check_apple())

    def ensure_google_ready(self) -> None:
        self.validator.require_google()
        if self.settings.strict_validation:
            self._strict_gate(self.validator.check_google())

    def get_apple_config_status(self) -> Dict[str, Any]:
        issues = self.validator.check_apple()
        return {
            'configured': not any(issue.is_error for issue in issues),
            'issues': [issue.message for issue in issues],
        }

    def get_google_config_status(self) -> Dict[str, Any]:
        issues = self.validator.check_google()
        return {
            'configured': not any(issue.is_error for issue in issues),
            'issues': [issue.message for issue in issues],
        }

    # =========================================================================
    # Pass Generation
    # =========================================================================

    def apple_generator(self) -> ApplePassGenerator:
        return ApplePassGenerator(self.settings, self.apple_signer)

    def preview_apple_pass_json(self, customer_card_id: str) -> Dict[str, Any]:
        """Unsigned pass.json for debugging; needs no credentials."""
        return self.apple_generator().build_pass_json(self.describe(customer_card_id))

    def generate_apple_pass(self, card: Union[str, CardRecord]) -> PassBundle:
        """
        Generate a signed Apple Wallet bundle.

        Args:
            card: Customer card id or CardRecord

        Returns:
            PassBundle (archive bytes plus download filename)
        """
        descriptor = self.describe(card)
        self.ensure_apple_ready()
        bundle = self.apple_generator().generate(descriptor)
        logger.info(f"Generated Apple pass for card {descriptor.serial_number}")
        return bundle

    def generate_google_pass(self, card: Union[str, CardRecord],
                             card_type: Optional[str] = None) -> GooglePassResult:
        """
        Upsert the loyalty class/object and sign the save link.

        Args:
            card: Customer card id or CardRecord
            card_type: Expected card type ('stamp' or 'membership'); a
                mismatch with the stored card is a ValidationError

        Returns:
            GooglePassResult
        """
        record = self.get_card(card) if isinstance(card, str) else card
        if card_type is not None:
            try:
                expected = CardType(card_type)
            except ValueError:
                raise ValidationError(f"Unknown card type: {card_type!r}", fields=['type'])
            if expected != record.card_type:
                raise ValidationError(
                    f"Card {record.customer_card_id} is a {record.card_type.value} card, "
                    f"not {expected.value}",
                    fields=['type']
                )

        descriptor = self.describe(record)
        self.ensure_google_ready()

        # Ids and payload size are settled before any remote call
        class_id = self.loyalty_manager.class_id_for(descriptor)
        object_id = derive_object_id(class_id, descriptor.serial_number)
        claims = self.save_link_signer.claims_for_object(object_id, class_id)
        self.save_link_signer.check_size(claims)

        sync = self.loyalty_manager.sync(descriptor)
        link = self.save_link_signer.save_link(claims)

        logger.info(
            f"Generated Google save link for card {descriptor.serial_number} "
            f"(object {'created' if sync.object_result.created else 'updated'})"
        )
        return GooglePassResult(
            save_url=link.url,
            token=link.token,
            class_id=sync.class_id,
            object_id=sync.object_id,
            created=sync.object_result.created,
            object_body=sync.object_body,
        )

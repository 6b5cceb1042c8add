# loyalty_wallet/wallet_pass/generators/apple.py

"""
Apple Wallet Pass Generator

Builds signed .pkpass bundles from a PassDescriptor. The pass document is
modelled with the wallet library; the manifest, signature and archive are
assembled here so that every bundled file is covered by the manifest and
the zip layout is reproducible.
"""

import hashlib
import json
import logging
import re
import zipfile
from io import BytesIO
from typing import Any, Dict, List, Optional

from wallet.models import Alignment, Barcode, Field, Pass, StoreCard

from ..assets import AssetGenerator
from ..errors import ValidationError
from ..formatting import hex_to_rgb
from ..models import CardState, DisplayField, PassBundle, PassDescriptor
from ..signing.apple import ManifestSigner
from ...config import WalletSettings

logger = logging.getLogger(__name__)

PASS_STYLES = ('boardingPass', 'coupon', 'eventTicket', 'generic', 'storeCard')
REQUIRED_KEYS = (
    'formatVersion', 'passTypeIdentifier', 'serialNumber',
    'teamIdentifier', 'organizationName', 'description',
)
BARCODE_FORMATS = {
    'QR': 'PKBarcodeFormatQR',
    'PDF417': 'PKBarcodeFormatPDF417',
    'AZTEC': 'PKBarcodeFormatAztec',
    'CODE128': 'PKBarcodeFormatCode128',
}

# Zip entries carry a fixed timestamp so identical inputs give identical archives
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)

_ALIGNMENTS = {
    'natural': Alignment.NATURAL,
    'left': Alignment.LEFT,
    'center': Alignment.CENTER,
    'right': Alignment.RIGHT,
}


def pkpass_filename(card_name: Optional[str]) -> str:
    """Download name for a card, e.g. 'Cafe Luna!' -> 'Cafe_Luna_.pkpass'."""
    stem = re.sub(r'[^a-zA-Z0-9]', '_', card_name or '')
    return f'{stem or "pass"}.pkpass'


def build_manifest(files: Dict[str, bytes]) -> Dict[str, str]:
    """SHA-1 hex digest for every file that goes into the bundle."""
    return {name: hashlib.sha1(data).hexdigest() for name, data in files.items()}


def validate_pass_json(pass_json: Dict[str, Any]) -> List[str]:
    """
    Structural check of a pass document.

    Returns:
        Names of missing or invalid keys (empty when valid)
    """
    problems = [key for key in REQUIRED_KEYS if pass_json.get(key) in (None, '')]

    styles = [style for style in PASS_STYLES if style in pass_json]
    if len(styles) != 1:
        problems.append('passStyle')

    barcodes = list(pass_json.get('barcodes') or [])
    if pass_json.get('barcode'):
        barcodes.append(pass_json['barcode'])
    valid_formats = set(BARCODE_FORMATS.values())
    for barcode in barcodes:
        if barcode.get('format') not in valid_formats:
            problems.append('barcodes')
            break
        if not barcode.get('message'):
            problems.append('barcodes')
            break

    return problems


class ApplePassGenerator:
    """
    Generates Apple Wallet .pkpass bundles.

    Signing is delegated to a ManifestSigner (normally AppleSigningService),
    so this class never touches key material.
    """

    def __init__(self, settings: WalletSettings, signer: ManifestSigner,
                 asset_generator: AssetGenerator = None):
        """
        Args:
            settings: WalletSettings with Apple identifiers
            signer: ManifestSigner that signs manifest.json
            asset_generator: AssetGenerator override; by default one is built
                per pass from the pass background color
        """
        self.settings = settings
        self.signer = signer
        self.asset_generator = asset_generator

    def _create_field(self, display_field: DisplayField) -> Field:
        pass_field = Field(display_field.key, display_field.value, display_field.label)
        pass_field.textAlignment = _ALIGNMENTS.get(display_field.alignment, Alignment.NATURAL)
        return pass_field

    def _authentication_token(self, descriptor: PassDescriptor) -> str:
        seed = f'{self.settings.apple_pass_type_identifier}:{descriptor.serial_number}'
        return hashlib.sha256(seed.encode('utf-8')).hexdigest()[:32]

    def build_pass_json(self, descriptor: PassDescriptor) -> Dict[str, Any]:
        """
        Build the pass.json document.

        Args:
            descriptor: PassDescriptor

        Returns:
            pass.json as a dictionary
        """
        card_info = StoreCard()
        groups = descriptor.fields
        for display_field in groups.header:
            card_info.headerFields.append(self._create_field(display_field))
        for display_field in groups.primary:
            card_info.primaryFields.append(self._create_field(display_field))
        for display_field in groups.secondary:
            card_info.secondaryFields.append(self._create_field(display_field))
        for display_field in groups.auxiliary:
            card_info.auxiliaryFields.append(self._create_field(display_field))
        for display_field in groups.back:
            card_info.backFields.append(self._create_field(display_field))

        pass_obj = Pass(
            card_info,
            passTypeIdentifier=self.settings.apple_pass_type_identifier or '',
            organizationName=self.settings.apple_organization_name or descriptor.business.name,
            teamIdentifier=self.settings.apple_team_identifier or ''
        )
        pass_obj.serialNumber = descriptor.serial_number
        pass_obj.description = descriptor.description
        pass_obj.logoText = descriptor.business.name

        barcode_format = BARCODE_FORMATS.get(descriptor.barcode.format.upper(), descriptor.barcode.format)
        pass_obj.barcode = Barcode(message=descriptor.barcode.value, format=barcode_format)
        pass_obj.barcode.altText = descriptor.barcode.alt_text
        pass_obj.barcode.messageEncoding = descriptor.barcode.message_encoding

        pass_obj.backgroundColor = hex_to_rgb(descriptor.background_color)
        pass_obj.foregroundColor = hex_to_rgb(descriptor.foreground_color, 'rgb(255, 255, 255)')
        pass_obj.labelColor = hex_to_rgb(descriptor.label_color, 'rgb(255, 255, 255)')

        pass_json = {key: value for key, value in pass_obj.json_dict().items() if value is not None}

        barcode = dict(pass_json.get('barcode') or {
            'message': descriptor.barcode.value,
            'format': barcode_format,
            'altText': descriptor.barcode.alt_text,
            'messageEncoding': descriptor.barcode.message_encoding,
        })
        pass_json['barcode'] = barcode
        pass_json['barcodes'] = [barcode]

        if descriptor.expiry_date:
            pass_json['expirationDate'] = f'{descriptor.expiry_date.isoformat()}T23:59:59Z'
        pass_json['voided'] = descriptor.state == CardState.EXPIRED
        pass_json['userInfo'] = {
            'cardType': descriptor.card_type.value,
            'cardId': descriptor.card_id,
            'customerCardId': descriptor.serial_number,
            'state': descriptor.state.value,
            'progress': descriptor.progress_percent,
        }

        if self.settings.apple_web_service_url:
            pass_json['webServiceURL'] = self.settings.apple_web_service_url
            pass_json['authenticationToken'] = self._authentication_token(descriptor)

        business = descriptor.business
        if business.latitude is not None and business.longitude is not None:
            pass_json['locations'] = [{
                'latitude': business.latitude,
                'longitude': business.longitude,
                'relevantText': f'Welcome to {business.name}!',
            }]

        return pass_json

    def _build_archive(self, bundle: PassBundle) -> bytes:
        entries = [
            ('pass.json', bundle.pass_json),
            ('manifest.json', bundle.manifest_json),
            ('signature', bundle.signature),
        ]
        entries.extend(sorted(bundle.assets.items()))

        buffer = BytesIO()
        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
            for name, data in entries:
                info = zipfile.ZipInfo(name, date_time=ZIP_TIMESTAMP)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                archive.writestr(info, data)
        return buffer.getvalue()

    def generate(self, descriptor: PassDescriptor) -> PassBundle:
        """
        Generate a signed .pkpass bundle.

        Args:
            descriptor: PassDescriptor

        Returns:
            PassBundle with archive bytes and download filename

        Raises:
            ValidationError: if the pass document is incomplete (raised
                before any signing)
            SigningError / ConfigurationError: from the signer
        """
        pass_json = self.build_pass_json(descriptor)
        problems = validate_pass_json(pass_json)
        if problems:
            raise ValidationError(
                f"Pass document failed validation: {', '.join(problems)}", fields=problems
            )

        asset_generator = self.asset_generator or AssetGenerator(descriptor.background_color)
        assets = asset_generator.generate(descriptor.business.logo_bytes)

        pass_bytes = json.dumps(pass_json, indent=2, ensure_ascii=False).encode('utf-8')
        bundle = PassBundle(
            pass_json=pass_bytes,
            assets=assets,
            manifest={},
            signature=b'',
            filename=pkpass_filename(descriptor.card_name),
        )
        bundle.manifest = build_manifest(bundle.bundled_files())

        bundle.signature = self.signer.sign(bundle.manifest_json)
        bundle.archive = self._build_archive(bundle)

        logger.info(
            f"Generated Apple Wallet pass for card {descriptor.serial_number} "
            f"({len(bundle.manifest)} files, {len(bundle.archive)} bytes)"
        )
        return bundle

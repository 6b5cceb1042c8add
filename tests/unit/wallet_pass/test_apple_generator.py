"""
Tests for Apple Wallet pass generation: pass.json, manifest and archive layout.
"""
import hashlib
import json
import zipfile
from dataclasses import replace
from datetime import date, datetime, timezone
from io import BytesIO
from unittest.mock import Mock

import pytest

from loyalty_wallet.wallet_pass.assembler import assemble_pass_descriptor
from loyalty_wallet.wallet_pass.assets import ASSET_SIZES
from loyalty_wallet.wallet_pass.errors import ValidationError
from loyalty_wallet.wallet_pass.generators.apple import (
    ApplePassGenerator, build_manifest, pkpass_filename, validate_pass_json
)
from loyalty_wallet.wallet_pass.signing import ManifestSigner

from tests.factories import MembershipCardFactory


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def fake_signer():
    signer = Mock(spec=ManifestSigner)
    signer.sign.return_value = b'fake-detached-signature'
    return signer


@pytest.fixture
def generator(wallet_settings, fake_signer):
    return ApplePassGenerator(wallet_settings, fake_signer)


@pytest.fixture
def cafe_luna_descriptor(cafe_luna):
    return assemble_pass_descriptor(cafe_luna, now=NOW)


# =============================================================================
# PASS.JSON TESTS
# =============================================================================

@pytest.mark.unit
class TestPassJson:

    def test_pass_json_carries_identifiers_and_fields(self, generator, cafe_luna_descriptor, wallet_settings):
        pass_json = generator.build_pass_json(cafe_luna_descriptor)

        assert pass_json['formatVersion'] == 1
        assert pass_json['passTypeIdentifier'] == wallet_settings.apple_pass_type_identifier
        assert pass_json['teamIdentifier'] == wallet_settings.apple_team_identifier
        assert pass_json['serialNumber'] == cafe_luna_descriptor.serial_number
        assert pass_json['storeCard']['primaryFields'][0]['value'] == '10/10'
        assert pass_json['backgroundColor'] == 'rgb(16, 185, 129)'
        assert pass_json['voided'] is False
        assert pass_json['userInfo']['state'] == 'COMPLETED'
        assert 'webServiceURL' not in pass_json
        assert validate_pass_json(pass_json) == []

    def test_barcode_is_qr_with_card_id(self, generator, cafe_luna_descriptor):
        pass_json = generator.build_pass_json(cafe_luna_descriptor)

        barcode = pass_json['barcodes'][0]
        assert barcode['format'] == 'PKBarcodeFormatQR'
        assert barcode['message'] == cafe_luna_descriptor.serial_number
        assert barcode['messageEncoding'] == 'iso-8859-1'

    def test_expired_membership_is_voided(self, generator):
        record = MembershipCardFactory(expiry_date=date(2026, 1, 31))
        descriptor = assemble_pass_descriptor(record, now=NOW)

        pass_json = generator.build_pass_json(descriptor)

        assert pass_json['voided'] is True
        assert pass_json['expirationDate'] == '2026-01-31T23:59:59Z'
        assert pass_json['barcodes'][0]['message'].startswith('gym:')

    def test_web_service_url_adds_authentication_token(self, wallet_settings, fake_signer, cafe_luna_descriptor):
        settings = replace(wallet_settings, apple_web_service_url='https://wallet.rewardjar.test/passes')

        pass_json = ApplePassGenerator(settings, fake_signer).build_pass_json(cafe_luna_descriptor)

        assert pass_json['webServiceURL'] == 'https://wallet.rewardjar.test/passes'
        assert len(pass_json['authenticationToken']) == 32

    def test_validate_reports_missing_keys_and_style(self):
        problems = validate_pass_json({'formatVersion': 1, 'barcodes': [{'format': 'QR', 'message': 'x'}]})

        assert 'teamIdentifier' in problems
        assert 'passStyle' in problems
        assert 'barcodes' in problems

    def test_filename(self):
        assert pkpass_filename('Cafe Luna!') == 'Cafe_Luna_.pkpass'
        assert pkpass_filename('') == 'pass.pkpass'


# =============================================================================
# BUNDLE TESTS
# =============================================================================

@pytest.mark.unit
class TestBundle:

    def test_manifest_covers_every_bundled_file(self, generator, cafe_luna_descriptor):
        """
        GIVEN a generated pass bundle
        WHEN reading the archive
        THEN manifest.json lists every file except itself and the signature
        AND each digest matches the archived bytes
        """
        bundle = generator.generate(cafe_luna_descriptor)

        with zipfile.ZipFile(BytesIO(bundle.archive)) as archive:
            names = archive.namelist()
            manifest = json.loads(archive.read('manifest.json'))
            assert set(manifest) == set(names) - {'manifest.json', 'signature'}
            for name, digest in manifest.items():
                assert hashlib.sha1(archive.read(name)).hexdigest() == digest
            assert archive.read('signature') == b'fake-detached-signature'

        assert set(ASSET_SIZES) <= set(manifest)

    def test_archive_entry_order(self, generator, cafe_luna_descriptor):
        bundle = generator.generate(cafe_luna_descriptor)

        with zipfile.ZipFile(BytesIO(bundle.archive)) as archive:
            names = archive.namelist()

        assert names[:3] == ['pass.json', 'manifest.json', 'signature']
        assert names[3:] == sorted(ASSET_SIZES)

    def test_identical_input_gives_identical_archive(self, generator, cafe_luna_descriptor):
        first = generator.generate(cafe_luna_descriptor)
        second = generator.generate(cafe_luna_descriptor)

        assert first.archive == second.archive

    def test_signer_receives_manifest_bytes(self, generator, fake_signer, cafe_luna_descriptor):
        bundle = generator.generate(cafe_luna_descriptor)

        fake_signer.sign.assert_called_once_with(bundle.manifest_json)
        assert bundle.filename == 'Cafe_Luna.pkpass'

    def test_invalid_pass_is_rejected_before_signing(self, wallet_settings, fake_signer, cafe_luna_descriptor):
        settings = replace(wallet_settings, apple_team_identifier=None)

        with pytest.raises(ValidationError) as exc_info:
            ApplePassGenerator(settings, fake_signer).generate(cafe_luna_descriptor)

        assert 'teamIdentifier' in exc_info.value.fields
        fake_signer.sign.assert_not_called()

    def test_build_manifest_uses_sha1(self):
        manifest = build_manifest({'pass.json': b'{}'})

        assert manifest == {'pass.json': hashlib.sha1(b'{}').hexdigest()}

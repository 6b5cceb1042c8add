# loyalty_wallet/wallet_pass/routes/public.py

"""
Public Wallet Pass Routes

Customer-facing endpoints that hand out Apple .pkpass downloads and Google
save links for a customer card, plus the wallet health endpoint. Cards are
addressed by their customer card id; authentication happens upstream.
"""

import logging
from flask import Blueprint, current_app, jsonify, make_response, render_template, request, url_for

from ..errors import (
    ConfigurationError, NetworkError, NotFoundError, SigningError,
    SizeLimitError, ValidationError, WalletError
)

logger = logging.getLogger(__name__)

public_wallet_bp = Blueprint('public_wallet', __name__, template_folder='../templates')

APPLE_REQUIRED_VARIABLES = [
    ('APPLE_CERT_BASE64', 'Pass Type ID certificate (PEM or DER, base64 encoded)'),
    ('APPLE_KEY_BASE64', 'Private key for the certificate (base64 encoded)'),
    ('APPLE_WWDR_BASE64', 'Apple WWDR intermediate certificate (base64 encoded)'),
    ('APPLE_CERT_PASSWORD', 'Password for the private key, if it is encrypted'),
    ('APPLE_TEAM_IDENTIFIER', '10-character Apple Developer Team ID'),
    ('APPLE_PASS_TYPE_IDENTIFIER', 'Pass Type ID, e.g. pass.com.example.loyalty'),
]

GOOGLE_REQUIRED_VARIABLES = [
    ('GOOGLE_WALLET_ISSUER_ID', 'Google Wallet issuer id from the Pay & Wallet console'),
    ('GOOGLE_SERVICE_ACCOUNT_EMAIL', 'Service account email with Wallet Objects access'),
    ('GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY', 'Service account private key (PEM)'),
]


def _service():
    return current_app.extensions['wallet_pass_service']


def _is_debug() -> bool:
    return request.args.get('debug', '').lower() == 'true'


def _setup_page(platform: str, customer_card_id: str, error: ConfigurationError):
    if platform == 'apple':
        required = APPLE_REQUIRED_VARIABLES
        alternative = url_for(
            'public_wallet.google_wallet_pass', customer_card_id=customer_card_id
        )
    else:
        required = GOOGLE_REQUIRED_VARIABLES
        alternative = url_for(
            'public_wallet.apple_wallet_pass', customer_card_id=customer_card_id
        )

    html = render_template(
        'wallet/setup_required.html',
        platform=platform,
        required=required,
        missing=error.missing,
        message=error.message,
        alternative_url=alternative,
        debug_url=f'{request.path}?debug=true',
    )
    response = make_response(html, 200)
    response.headers['Content-Type'] = 'text/html; charset=utf-8'
    return response


def _error_response(error: WalletError, platform: str, customer_card_id: str):
    """Map a wallet error onto its HTTP response."""
    if isinstance(error, NotFoundError):
        return jsonify({'error': error.message, 'code': error.error_code}), 404
    if isinstance(error, ConfigurationError):
        return _setup_page(platform, customer_card_id, error)
    if isinstance(error, ValidationError):
        return jsonify({'error': error.message, 'code': error.error_code, 'fields': error.fields}), 400
    if isinstance(error, SizeLimitError):
        return jsonify({
            'error': error.message,
            'code': error.error_code,
            'size': error.size,
            'limit': error.limit,
        }), 413
    if isinstance(error, NetworkError):
        return jsonify({
            'error': 'Google Wallet API request failed',
            'code': error.error_code,
            'upstreamStatus': error.status,
        }), 502
    if isinstance(error, SigningError):
        return jsonify({'error': 'Unable to sign wallet pass', 'code': error.error_code}), 500
    return jsonify({'error': error.message, 'code': error.error_code}), 500


@public_wallet_bp.route('/api/wallet/apple/<customer_card_id>')
def apple_wallet_pass(customer_card_id):
    """
    Download an Apple Wallet pass for a customer card.

    URL: /api/wallet/apple/<customer_card_id>[?debug=true]

    With debug=true the unsigned pass.json and configuration status are
    returned as JSON instead of the signed bundle.
    """
    service = _service()
    try:
        if _is_debug():
            return jsonify({
                'customerCardId': customer_card_id,
                'passJson': service.preview_apple_pass_json(customer_card_id),
                'configuration': service.get_apple_config_status(),
                'environment': service.settings.environment,
            })

        bundle = service.generate_apple_pass(customer_card_id)
    except WalletError as e:
        logger.warning(f"Apple pass for card {customer_card_id} failed: {e.error_code}: {e.message}")
        return _error_response(e, 'apple', customer_card_id)

    response = make_response(bundle.archive)
    response.headers['Content-Type'] = 'application/vnd.apple.pkpass'
    response.headers['Content-Disposition'] = f'attachment; filename="{bundle.filename}"'
    response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
    response.headers['Pragma'] = 'no-cache'
    response.headers['Expires'] = '0'
    return response


@public_wallet_bp.route('/api/wallet/google/<customer_card_id>')
def google_wallet_pass(customer_card_id):
    """
    Get a Google Wallet save link for a customer card.

    URL: /api/wallet/google/<customer_card_id>?type=stamp|membership[&debug=true]
    """
    service = _service()
    card_type = request.args.get('type')
    try:
        result = service.generate_google_pass(customer_card_id, card_type=card_type)
    except WalletError as e:
        logger.warning(f"Google pass for card {customer_card_id} failed: {e.error_code}: {e.message}")
        return _error_response(e, 'google', customer_card_id)

    payload = {
        'saveUrl': result.save_url,
        'classId': result.class_id,
        'objectId': result.object_id,
        'created': result.created,
    }
    if _is_debug():
        payload['token'] = result.token
        payload['loyaltyObject'] = result.object_body
    return jsonify(payload)


@public_wallet_bp.route('/api/health/wallet')
def wallet_health():
    """
    Wallet configuration health.

    Returns 503 when neither platform can issue passes or the environment
    is misconfigured.
    """
    report = _service().validator.health_check()
    status_code = 503 if report['status'] == 'unhealthy' else 200
    return jsonify(report), status_code

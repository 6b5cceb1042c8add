# loyalty_wallet/wallet_pass/compliance.py

"""
Wallet Compliance Validator

Checks that Apple and Google wallet configuration is present and plausible,
runs canary signings that touch no card data, and rolls everything up into
the health report served at /api/health/wallet.
"""

import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List

from .errors import ConfigurationError, WalletError
from .signing.apple import AppleSigningService
from .signing.credentials import load_signing_credential, missing_apple_credentials
from .signing.save_link import SaveLinkSigner
from ..config import WalletSettings

logger = logging.getLogger(__name__)

EXPIRY_WARNING_WINDOW = timedelta(days=30)
CANARY_MANIFEST = b'{"canary.json": "0000000000000000000000000000000000000000"}'


@dataclass(frozen=True)
class ComplianceIssue:
    platform: str
    code: str
    message: str
    severity: str = 'error'

    @property
    def is_error(self) -> bool:
        return self.severity == 'error'


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def missing_google_credentials(settings: WalletSettings) -> List[str]:
    missing = []
    if not settings.google_issuer_id:
        missing.append('GOOGLE_WALLET_ISSUER_ID')
    if not settings.google_service_account_file:
        if not settings.google_service_account_email:
            missing.append('GOOGLE_SERVICE_ACCOUNT_EMAIL')
        if not settings.google_service_account_private_key:
            missing.append('GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY')
    return missing


class ComplianceValidator:
    """
    Validates wallet configuration for both platforms.

    The check_* and health_check methods report problems as ComplianceIssue
    values and never raise. require_* raise ConfigurationError for callers
    that must stop before signing.
    """

    def __init__(self, settings: WalletSettings, clock: Callable[[], datetime] = None):
        self.settings = settings
        self.clock = clock or _utc_now

    def check_apple(self) -> List[ComplianceIssue]:
        settings = self.settings
        issues = [
            ComplianceIssue('apple', 'MISSING_CONFIG', f"{name} is not set")
            for name in missing_apple_credentials(settings)
        ]

        team_id = settings.apple_team_identifier
        if team_id and (len(team_id) != 10 or not team_id.isalnum()):
            issues.append(ComplianceIssue(
                'apple', 'INVALID_TEAM_ID',
                f"Team identifier must be 10 alphanumeric characters, got {len(team_id)}"
            ))

        pass_type_id = settings.apple_pass_type_identifier
        if pass_type_id and not pass_type_id.startswith('pass.'):
            issues.append(ComplianceIssue(
                'apple', 'INVALID_PASS_TYPE_ID', "Pass type identifier must start with 'pass.'"
            ))

        if not settings.has_apple_credentials:
            return issues

        try:
            credential = load_signing_credential(settings)
        except ConfigurationError as e:
            issues.append(ComplianceIssue('apple', 'UNREADABLE_CREDENTIAL', e.message))
            return issues

        now = self.clock()
        for label, cert in (
            ('Pass certificate', credential.certificate),
            ('WWDR certificate', credential.wwdr_certificate),
        ):
            expires = cert.not_valid_after_utc
            if expires < now:
                issues.append(ComplianceIssue(
                    'apple', 'CERTIFICATE_EXPIRED', f"{label} expired on {expires.date().isoformat()}"
                ))
            elif expires - now < EXPIRY_WARNING_WINDOW:
                issues.append(ComplianceIssue(
                    'apple', 'CERTIFICATE_EXPIRING',
                    f"{label} expires on {expires.date().isoformat()}", severity='warning'
                ))
        return issues

    def check_google(self) -> List[ComplianceIssue]:
        settings = self.settings
        issues = [
            ComplianceIssue('google', 'MISSING_CONFIG', f"{name} is not set")
            for name in missing_google_credentials(settings)
        ]

        issuer_id = settings.google_issuer_id
        if issuer_id and (len(issuer_id) < 10 or not issuer_id.isdigit()):
            issues.append(ComplianceIssue(
                'google', 'INVALID_ISSUER_ID', 'Issuer id must be numeric and at least 10 digits'
            ))

        email = settings.google_service_account_email
        if email and '@' not in email:
            issues.append(ComplianceIssue(
                'google', 'INVALID_SERVICE_ACCOUNT_EMAIL', 'Service account email is not an email address'
            ))

        private_key = settings.google_service_account_private_key
        if private_key and not ('-----BEGIN' in private_key and 'PRIVATE KEY-----' in private_key):
            issues.append(ComplianceIssue(
                'google', 'INVALID_PRIVATE_KEY', 'Service account private key is not PEM encoded'
            ))

        key_file = settings.google_service_account_file
        if key_file and not os.path.exists(key_file):
            issues.append(ComplianceIssue(
                'google', 'MISSING_SERVICE_ACCOUNT_FILE', f"Service account file not found at {key_file}"
            ))
        return issues

    def check_environment(self) -> List[ComplianceIssue]:
        settings = self.settings
        if not settings.is_production:
            return []

        issues = []
        if not (settings.base_url or '').startswith('https://'):
            issues.append(ComplianceIssue(
                'environment', 'INSECURE_BASE_URL', 'WALLET_BASE_URL must use https:// in production'
            ))
        if not settings.strict_validation:
            issues.append(ComplianceIssue(
                'environment', 'STRICT_VALIDATION_DISABLED',
                'WALLET_STRICT_VALIDATION must be enabled in production'
            ))
        return issues

    def canary_apple(self) -> List[ComplianceIssue]:
        """Sign a throwaway manifest with the configured credentials."""
        if not self.settings.has_apple_credentials:
            return [ComplianceIssue('apple', 'CANARY_SKIPPED', 'Apple credentials not configured')]
        try:
            AppleSigningService(self.settings, clock=self.clock).sign(CANARY_MANIFEST)
        except WalletError as e:
            return [ComplianceIssue('apple', 'CANARY_FAILED', e.message)]
        except Exception as e:
            logger.error(f"Apple canary signing raised unexpectedly: {e}", exc_info=True)
            return [ComplianceIssue('apple', 'CANARY_FAILED', str(e))]
        return []

    def canary_google(self) -> List[ComplianceIssue]:
        """Sign a throwaway save-link token with the service account key."""
        if not self.settings.has_google_credentials:
            return [ComplianceIssue('google', 'CANARY_SKIPPED', 'Google credentials not configured')]
        try:
            object_id = f'{self.settings.google_issuer_id}.canary.healthcheck'
            SaveLinkSigner(self.settings, clock=self.clock).create_save_link(object_id)
        except WalletError as e:
            return [ComplianceIssue('google', 'CANARY_FAILED', e.message)]
        except Exception as e:
            logger.error(f"Google canary signing raised unexpectedly: {e}", exc_info=True)
            return [ComplianceIssue('google', 'CANARY_FAILED', str(e))]
        return []

    def _platform_report(self, checks: List[ComplianceIssue],
                         canary: Callable[[], List[ComplianceIssue]]) -> Dict[str, Any]:
        issues = list(checks)
        if not any(issue.is_error for issue in issues):
            issues.extend(canary())
        errors = [issue for issue in issues if issue.is_error]
        return {
            'configured': not errors,
            'issues': [asdict(issue) for issue in issues],
        }

    def health_check(self) -> Dict[str, Any]:
        """
        Aggregate configuration checks and canaries.

        Returns:
            dict with 'status' (healthy / degraded / unhealthy), per-platform
            reports and environment issues
        """
        try:
            apple = self._platform_report(self.check_apple(), self.canary_apple)
            google = self._platform_report(self.check_google(), self.canary_google)
            environment = [asdict(issue) for issue in self.check_environment()]
        except Exception as e:
            logger.error(f"Wallet health check failed: {e}", exc_info=True)
            return {
                'status': 'unhealthy',
                'error': str(e),
                'timestamp': self.clock().isoformat(),
            }

        configured = [apple['configured'], google['configured']]
        has_warnings = any(
            issue['severity'] == 'warning'
            for report in (apple, google) for issue in report['issues']
        )
        if environment or not any(configured):
            status = 'unhealthy'
        elif not all(configured) or has_warnings:
            status = 'degraded'
        else:
            status = 'healthy'

        return {
            'status': status,
            'environment': self.settings.environment,
            'timestamp': self.clock().isoformat(),
            'apple': apple,
            'google': google,
            'environment_issues': environment,
        }

    def require_apple(self) -> None:
        missing = missing_apple_credentials(self.settings)
        if missing:
            raise ConfigurationError(
                f"Apple Wallet is not configured: {', '.join(missing)}", missing=missing
            )

    def require_google(self) -> None:
        missing = missing_google_credentials(self.settings)
        if missing:
            raise ConfigurationError(
                f"Google Wallet is not configured: {', '.join(missing)}", missing=missing
            )

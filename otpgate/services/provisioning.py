"""Provisioning URI builder for authenticator apps.

Format (Key Uri Format used by Google Authenticator and compatible apps):
    otpauth://totp/{issuer}:{label}?secret={base32}&issuer={issuer}
        &algorithm={alg}&digits={n}&period={step}

The URI is what an external QR renderer turns into the setup image.
"""

from urllib.parse import quote

from otpgate.errors import InvalidLabelError
from otpgate.models.totp import TOTPParameters
from otpgate.services import base32_codec


def _validate_label_part(value, field_name: str) -> str:
    if not isinstance(value, str):
        raise InvalidLabelError(f"{field_name} must be text")
    if not value.strip():
        raise InvalidLabelError(f"{field_name} must not be empty")
    if ":" in value:
        raise InvalidLabelError(f"{field_name} must not contain ':'")
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in value):
        raise InvalidLabelError(f"{field_name} must not contain control characters")
    return value


class ProvisioningURIBuilder:
    """Builds otpauth:// URIs. Stateless."""

    def build(
        self,
        issuer: str,
        account_label: str,
        secret: bytes,
        params: TOTPParameters,
    ) -> str:
        """Build the otpauth URI for a secret.

        Args:
            issuer: Service name shown in the authenticator app
            account_label: Account identifier, usually the email address
            secret: Raw secret bytes (Base32-encoded into the URI)
            params: TOTP parameters advertised to the app

        Raises:
            InvalidLabelError: If issuer or label is empty, contains ':'
                or control characters, or is not text
        """
        issuer = _validate_label_part(issuer, "issuer")
        account_label = _validate_label_part(account_label, "account label")

        encoded_issuer = quote(issuer, safe="")
        label = f"{encoded_issuer}:{quote(account_label, safe='@')}"
        query = "&".join([
            f"secret={base32_codec.encode(secret)}",
            f"issuer={encoded_issuer}",
            f"algorithm={params.algorithm.value}",
            f"digits={params.digits}",
            f"period={params.step_seconds}",
        ])

        return f"otpauth://totp/{label}?{query}"

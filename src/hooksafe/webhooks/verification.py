"""Signature verification for inbound webhooks.

Signatures are HMAC-SHA256 over the raw body, sent as ``sha256=<hex_digest>``.
The signature carries no timestamp, so a stored payload still verifies when
the sweeper re-drives it minutes or hours later.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Protocol

from pydantic import ValidationError

from hooksafe.exceptions import VerificationError
from hooksafe.models import WebhookEvent

SIGNATURE_PREFIX = "sha256="


def _as_bytes(payload: str | bytes) -> bytes:
    return payload.encode("utf-8") if isinstance(payload, str) else payload


def compute_signature(payload: str | bytes, secret: str) -> str:
    """Compute HMAC-SHA256 signature for a webhook payload.

    Args:
        payload: Raw body to sign.
        secret: Shared secret for HMAC.

    Returns:
        Signature in format "sha256=<hex_digest>".
    """
    signature = hmac.new(
        key=secret.encode("utf-8"),
        msg=_as_bytes(payload),
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"{SIGNATURE_PREFIX}{signature}"


def verify_signature(payload: str | bytes, secret: str, signature: str) -> bool:
    """Verify HMAC-SHA256 signature for a webhook payload.

    Args:
        payload: Raw body that was signed.
        secret: Shared secret for HMAC.
        signature: Signature to verify (format: "sha256=<hex_digest>").

    Returns:
        True if signature is valid, False otherwise.
    """
    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


class EventVerifier(Protocol):
    """Authenticates a raw webhook and parses it into a WebhookEvent.

    Implementations raise VerificationError for a bad signature or a
    malformed body.
    """

    def verify(self, payload: str | bytes, signature: str, secret: str) -> WebhookEvent: ...


class HmacEventVerifier:
    """Default verifier: sha256 HMAC signature plus a JSON envelope.

    The envelope is ``{"id": ..., "type": ..., "data": {...}, "created": ...}``;
    unknown top-level keys are ignored.
    """

    def verify(self, payload: str | bytes, signature: str, secret: str) -> WebhookEvent:
        """Check the signature, then parse the body.

        Raises:
            VerificationError: If the signature is missing or wrong, or the
                body is not a valid event envelope.
        """
        if not signature:
            raise VerificationError("Missing webhook signature")

        if not verify_signature(payload, secret, signature):
            raise VerificationError("Invalid webhook signature")

        try:
            return WebhookEvent.model_validate_json(_as_bytes(payload))
        except ValidationError as e:
            raise VerificationError(f"Malformed webhook payload: {e.error_count()} error(s)") from e

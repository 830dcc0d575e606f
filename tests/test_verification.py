"""Tests for webhook signature verification."""

import json

import pytest
from factories import SECRET, make_payload, sign

from hooksafe.exceptions import VerificationError
from hooksafe.webhooks import HmacEventVerifier, compute_signature, verify_signature


class TestSignatures:
    """Tests for compute_signature() and verify_signature()."""

    def test_signature_format(self) -> None:
        """Signatures are prefixed hex digests."""
        signature = compute_signature('{"test": "data"}', "secret")
        assert signature.startswith("sha256=")
        assert len(signature) == len("sha256=") + 64

    def test_str_and_bytes_agree(self) -> None:
        """The same body signs identically as text or bytes."""
        payload = make_payload()
        assert compute_signature(payload, SECRET) == compute_signature(
            payload.encode("utf-8"), SECRET
        )

    def test_verify_valid(self) -> None:
        """A signature made with the same secret verifies."""
        payload = make_payload()
        assert verify_signature(payload, SECRET, sign(payload))

    def test_verify_wrong_secret(self) -> None:
        """A signature made with another secret does not verify."""
        payload = make_payload()
        assert not verify_signature(payload, SECRET, sign(payload, "other_secret"))

    def test_verify_modified_payload(self) -> None:
        """Any change to the body invalidates the signature."""
        signature = sign(make_payload())
        assert not verify_signature(make_payload(event_id="evt_2"), SECRET, signature)


class TestHmacEventVerifier:
    """Tests for HmacEventVerifier.verify()."""

    def test_parses_envelope(self) -> None:
        """A valid delivery yields a WebhookEvent."""
        payload = make_payload("evt_42", "customer.subscription.updated", {"plan": "pro"})

        event = HmacEventVerifier().verify(payload, sign(payload), SECRET)

        assert event.id == "evt_42"
        assert event.type == "customer.subscription.updated"
        assert event.data == {"plan": "pro"}
        assert event.created is not None

    def test_ignores_unknown_fields(self) -> None:
        """Extra top-level keys are ignored."""
        payload = json.dumps({"id": "evt_1", "type": "t", "livemode": False})

        event = HmacEventVerifier().verify(payload, sign(payload), SECRET)

        assert event.data == {}

    def test_missing_signature(self) -> None:
        """An empty signature is rejected."""
        with pytest.raises(VerificationError, match="Missing"):
            HmacEventVerifier().verify(make_payload(), "", SECRET)

    def test_invalid_signature(self) -> None:
        """A wrong signature is rejected."""
        with pytest.raises(VerificationError, match="Invalid"):
            HmacEventVerifier().verify(make_payload(), "sha256=deadbeef", SECRET)

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            '{"type": "t"}',
            '{"id": "", "type": "t"}',
            '{"id": "evt_1"}',
            "[]",
        ],
    )
    def test_malformed_body(self, payload: str) -> None:
        """Signed but malformed bodies are rejected."""
        with pytest.raises(VerificationError, match="Malformed"):
            HmacEventVerifier().verify(payload, sign(payload), SECRET)

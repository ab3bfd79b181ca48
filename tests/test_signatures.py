from __future__ import annotations

import pytest

from autodocs.github.signatures import SignatureError, sign, verify_signature

BODY = b'{"zen": "Keep it logically awesome."}'


def test_sign_matches_github_format() -> None:
    sig = sign(BODY, "secret")
    assert sig.startswith("sha256=")
    assert len(sig) == len("sha256=") + 64


def test_valid_signature_passes() -> None:
    verify_signature(body=BODY, signature=sign(BODY, "secret"), secret="secret")


@pytest.mark.parametrize(
    "signature",
    [
        None,
        "",
        "sha1=" + "0" * 40,
        "sha256=" + "0" * 64,
    ],
)
def test_rejected_signatures(signature: str | None) -> None:
    with pytest.raises(SignatureError):
        verify_signature(body=BODY, signature=signature, secret="secret")


def test_tampered_body_is_rejected() -> None:
    sig = sign(BODY, "secret")
    with pytest.raises(SignatureError, match="Invalid signature"):
        verify_signature(body=BODY + b" ", signature=sig, secret="secret")


def test_wrong_secret_is_rejected() -> None:
    with pytest.raises(SignatureError):
        verify_signature(body=BODY, signature=sign(BODY, "other"), secret="secret")

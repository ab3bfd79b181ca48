"""
autodocs.github.signatures

GitHub webhook signature helpers (`X-Hub-Signature-256`).
"""

from __future__ import annotations

import hashlib
import hmac

_PREFIX = "sha256="


class SignatureError(Exception):
    pass


def sign(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return _PREFIX + digest


def verify_signature(*, body: bytes, signature: str | None, secret: str) -> None:
    """Raise `SignatureError` unless `signature` is the HMAC-SHA256 of `body` under `secret`."""

    if not signature:
        raise SignatureError("Missing signature")
    if not signature.startswith(_PREFIX):
        raise SignatureError("Unsupported signature scheme")
    if not hmac.compare_digest(sign(body, secret), signature):
        raise SignatureError("Invalid signature")

"""
autodocs.auth.jwt

JWT issuing and validation helpers.

Responsibilities:
- Issue short-lived HS256 tokens for local/dev use (`POST /v1/dev/token`, tests).
- Decode tokens minted by the identity provider in front of the dashboard and
  require the registered claims (iss/aud/exp/iat/sub).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from autodocs.settings import Settings


class JwtValidationError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class TokenCodec:
    alg: str
    issuer: str
    audience: str
    secret: str

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenCodec:
        return cls(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
        )

    def issue(
        self,
        *,
        subject: str,
        roles: list[str],
        ttl: timedelta = timedelta(hours=1),
    ) -> str:
        now = datetime.now(tz=UTC)
        claims: dict[str, Any] = {
            "iss": self.issuer,
            "aud": self.audience,
            "sub": subject,
            "roles": roles,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(claims, self.secret, algorithm=self.alg)

    def decode(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.alg],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": ["exp", "iat", "iss", "aud", "sub"]},
            )
        except InvalidTokenError as e:
            raise JwtValidationError(str(e)) from e

"""JWT verification for the account API.

Tokens are issued by the authentication service. Keys come from, in order of
preference: a JWKS endpoint, a static PEM public key, or (development only)
a shared HS256 secret. The ``sub`` claim carries the customer's email.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import jwt
from jwt import PyJWKClient

from ..core.config import AuthConfig
from ..core.errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    subject: str
    token: str
    email: str | None = None
    name: str | None = None
    roles: tuple[str, ...] = field(default_factory=tuple)

    @property
    def login_email(self) -> str:
        return self.email or self.subject


class JwtVerifier:
    def __init__(self, cfg: AuthConfig) -> None:
        self._cfg = cfg
        self._jwks: PyJWKClient | None = None
        self._key: str | None = None
        self._algorithms = list(cfg.algorithms)

        if cfg.jwks_url:
            self._jwks = PyJWKClient(cfg.jwks_url, cache_keys=True)
        elif cfg.public_key_pem:
            self._key = cfg.public_key_pem
        elif cfg.shared_secret:
            self._key = cfg.shared_secret
            if "HS256" not in self._algorithms:
                self._algorithms = ["HS256"]
        elif cfg.enabled:
            raise ConfigurationError(
                "auth.enabled requires auth.jwks_url, auth.public_key_pem "
                "or auth.shared_secret"
            )

    @property
    def enabled(self) -> bool:
        return self._cfg.enabled

    def verify(self, token: str) -> Principal:
        """Decode and validate ``token``; raises ``AuthenticationError``."""
        if not token:
            raise AuthenticationError("Missing bearer token")
        if not self._cfg.enabled:
            return self._unverified(token)
        try:
            key = (
                self._jwks.get_signing_key_from_jwt(token).key
                if self._jwks is not None else self._key
            )
            claims = jwt.decode(
                token,
                key,
                algorithms=self._algorithms,
                audience=self._cfg.audience,
                issuer=self._cfg.issuer,
                leeway=self._cfg.leeway_seconds,
                options={
                    "require": ["sub", "exp"],
                    "verify_aud": self._cfg.audience is not None,
                },
            )
        except jwt.PyJWTError as exc:
            logger.info("Rejected bearer token: %s", exc)
            raise AuthenticationError(f"Invalid token: {exc}") from exc

        return self._principal(token, claims)

    def _unverified(self, token: str) -> Principal:
        """Auth disabled: read claims without checking the signature."""
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            raise AuthenticationError(f"Malformed token: {exc}") from exc
        if "sub" not in claims:
            raise AuthenticationError("Token has no 'sub' claim")
        return self._principal(token, claims)

    @staticmethod
    def _principal(token: str, claims: dict) -> Principal:
        roles = claims.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        return Principal(
            subject=str(claims["sub"]),
            token=token,
            email=claims.get("email"),
            name=claims.get("name"),
            roles=tuple(roles),
        )

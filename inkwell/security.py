from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from inkwell.errors import Unauthorized
from inkwell.settings import Settings, get_settings

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """A verified caller, attached to the request that presented the token."""

    user_id: str
    session_id: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


@lru_cache(maxsize=4)
def _jwks_client(jwks_url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(jwks_url)


class TokenVerifier:
    """
    Validates identity provider session tokens.

    With ``AUTH_JWT_SECRET`` set, tokens are HS256 signed with that secret.
    Otherwise they are RS256 tokens checked against the provider's JWKS.
    """

    def __init__(self, settings_obj: Settings):
        self.settings = settings_obj

    def verify(self, token: str) -> Identity:
        try:
            payload = self._decode(token)
        except jwt.PyJWTError as e:
            raise Unauthorized("Invalid or expired token") from e

        parties = self.settings.AUTH_AUTHORIZED_PARTIES
        if parties and payload.get("azp") and payload["azp"] not in parties:
            raise Unauthorized("Token issued for an unknown party")

        user_id = payload.get("sub")
        if not user_id:
            raise Unauthorized("Token has no subject")
        return Identity(user_id=user_id, session_id=payload.get("sid"), claims=payload)

    def _decode(self, token: str) -> Dict[str, Any]:
        issuer = self.settings.AUTH_ISSUER or None
        options = {"verify_aud": False}
        if self.settings.AUTH_JWT_SECRET:
            return jwt.decode(
                token,
                self.settings.AUTH_JWT_SECRET,
                algorithms=["HS256"],
                issuer=issuer,
                options=options,
            )
        if not self.settings.AUTH_JWKS_URL:
            raise Unauthorized("Authentication is not configured")

        signing_key = _jwks_client(self.settings.AUTH_JWKS_URL).get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=issuer,
            options=options,
        )


def get_token_verifier(current_settings: Settings = Depends(get_settings)) -> TokenVerifier:
    return TokenVerifier(current_settings)


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Identity:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Missing bearer token")
    return verifier.verify(credentials.credentials)

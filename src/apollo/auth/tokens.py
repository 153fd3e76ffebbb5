from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from apollo.config import ApolloConfig


def _require_secret(config: ApolloConfig) -> str:
    if not config.jwt_secret:
        msg = "jwt_secret is not configured"
        raise ValueError(msg)
    return config.jwt_secret


def sign_access_token(config: ApolloConfig, uid: str, expires_minutes: int | None = None) -> str:
    """Issue an HS256 access token whose ``sub`` is ``uid``."""
    now = datetime.now(UTC)
    lifetime = expires_minutes if expires_minutes is not None else config.access_token_exp_minutes
    payload: dict[str, Any] = {
        "sub": uid,
        "iat": now,
        "exp": now + timedelta(minutes=lifetime),
    }
    if config.jwt_audience:
        payload["aud"] = config.jwt_audience
    return jwt.encode(payload, _require_secret(config), algorithm=config.jwt_algorithm)


def verify_access_token(config: ApolloConfig, token: str) -> dict[str, Any]:
    """Decode and validate an access token, raising ``jwt.InvalidTokenError`` on failure."""
    options = {"require": ["sub", "exp"]}
    kwargs: dict[str, Any] = {"algorithms": [config.jwt_algorithm], "options": options}
    if config.jwt_audience:
        kwargs["audience"] = config.jwt_audience
    else:
        options["verify_aud"] = False
    return jwt.decode(token, _require_secret(config), **kwargs)

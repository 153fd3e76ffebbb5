from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status

from apollo.auth.tokens import verify_access_token
from apollo.config import AUTH_HEADER, ApolloConfig
from apollo.log_config import logger

_config: ApolloConfig | None = None


def set_config(config: ApolloConfig) -> None:
    """Set the global config instance."""
    global _config  # noqa: PLW0603
    _config = config


def get_config() -> ApolloConfig:
    """Get the global config instance."""
    if _config is None:
        msg = "Config not initialized"
        raise RuntimeError(msg)
    return _config


def _extract_bearer_token(request: Request) -> str:
    """Extract and validate Bearer token from request header."""
    header = request.headers.get(AUTH_HEADER)

    if not header:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {AUTH_HEADER} header",
        )

    if not header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid {AUTH_HEADER} header format. Expected 'Bearer <token>'",
        )

    return header[7:]


async def verify_caller(
    request: Request,
    config: Annotated[ApolloConfig, Depends(get_config)],
) -> str:
    """Verify the caller's access token.

    Returns:
        The caller uid (the token's ``sub`` claim)

    Raises:
        HTTPException: 401 when the token is missing, malformed, expired or forged

    """
    token = _extract_bearer_token(request)
    try:
        claims = verify_access_token(config, token)
    except jwt.ExpiredSignatureError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token expired",
        ) from e
    except (jwt.InvalidTokenError, ValueError) as e:
        logger.info("Rejected access token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
        ) from e

    uid = claims.get("sub")
    if not isinstance(uid, str) or not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token has no subject",
        )
    return uid


def get_client_ip(
    request: Request,
    config: Annotated[ApolloConfig, Depends(get_config)],
) -> str:
    """Best-effort client IP used as the identity of per-IP rate limits."""
    if config.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"

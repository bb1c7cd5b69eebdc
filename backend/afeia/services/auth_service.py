# auth service - verifies practitioner access tokens
# tokens are issued by the main platform; this api only needs to trust them

import logging
from typing import Optional

from jose import JWTError, jwt
from afeia.config import settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


def decode_access_token(token: str) -> Optional[dict]:
    """claims of a valid, unexpired access token carrying a subject, else none"""
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token decode failed: {e}")
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE or not claims.get("sub"):
        logger.warning("Token rejected: not an access token or missing subject")
        return None
    return claims

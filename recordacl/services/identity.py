"""Acting-user identity from CRM access tokens."""

from typing import Optional

from jose import JWTError, jwt

from ..common.logger import get_logger

logger = get_logger("identity")


def user_id_from_token(
    token: Optional[str],
    secret: Optional[str] = None,
    algorithm: str = "HS256",
) -> Optional[str]:
    """Extract the user id (``sub`` claim) from a CRM JWT.

    The signature is verified only when a secret is given; otherwise
    the claims are read as issued by the CRM.

    Returns:
        The user id, or None if the token is missing or invalid
    """
    if not token:
        return None

    try:
        if secret:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[algorithm],
                options={"verify_aud": False},
            )
        else:
            payload = jwt.get_unverified_claims(token)
    except JWTError as e:
        logger.debug(f"Rejected access token: {e}")
        return None

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).strip():
        return None
    return str(user_id).strip()

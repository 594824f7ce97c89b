# FILE: artforge/services/auth_service.py
# Tokens are issued by the external identity provider; we only verify them.
# create_token exists for local development and the smoke script.
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Optional

import jwt


@dataclass(frozen=True)
class Identity:
    account_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


def decode_identity(token: str, secret: str, algorithm: str = "HS256") -> Identity:
    """Raises jwt.InvalidTokenError (incl. ExpiredSignatureError) on bad tokens."""
    payload = jwt.decode(
        token.strip(),
        secret,
        algorithms=[algorithm],
        options={"verify_aud": False},
    )
    account_id = payload.get("sub") or payload.get("user_id")
    if not account_id or not isinstance(account_id, str):
        raise jwt.InvalidTokenError("Token has no subject")

    metadata = payload.get("user_metadata") or {}
    return Identity(
        account_id=account_id,
        email=payload.get("email") or "",
        first_name=metadata.get("first_name"),
        last_name=metadata.get("last_name"),
    )


def create_token(account_id: str, email: str, secret: str, algorithm: str = "HS256", hours: int = 24) -> str:
    payload = {
        "sub": account_id,
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=hours),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)

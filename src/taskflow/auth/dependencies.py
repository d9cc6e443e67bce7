"""FastAPI auth dependencies.

get_current_user is attached to every protected route. It takes the
token from an `Authorization: Bearer ...` header when one is sent (CLI,
scripts), otherwise from the `token` cookie set at login, and hands it
to CredentialVerifier.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth.verifier import CredentialVerifier
from taskflow.config import settings
from taskflow.db.engine import get_db
from taskflow.errors import AuthenticationError
from taskflow.schemas.auth import UserRead


def get_credential_verifier(db: AsyncSession = Depends(get_db)) -> CredentialVerifier:
    return CredentialVerifier(db)


def extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    return request.cookies.get(settings.cookie_name) or None


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
) -> UserRead:
    """Resolve the caller (401 if there is no valid credential)."""
    token = extract_token(request, authorization)
    if not token:
        raise AuthenticationError("Access token required")
    return await verifier.verify(token)

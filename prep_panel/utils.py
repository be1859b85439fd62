import logging
import re

from fastapi import Depends

from .errors import AuthenticationError
from .models import User
from .users import optional_active_user

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(s: str) -> str:
    """Lower-case, collapse non-alphanumeric runs to '-', trim '-' at both ends."""
    s = (s or "").strip().lower()
    return _NON_ALNUM.sub("-", s).strip("-")


# Dependency to enforce authentication
async def require_authenticated_user(user: User | None = Depends(optional_active_user)) -> User:
    if not user:
        raise AuthenticationError("Not authenticated")
    return user

from __future__ import annotations

from .access_codes import AccessCodeManager
from .passwords import PasswordManager
from .rate_limit import AccessRateLimiter

__all__ = ["AccessCodeManager", "PasswordManager", "AccessRateLimiter"]

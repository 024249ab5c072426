from __future__ import annotations

import hmac
import logging
from functools import lru_cache
from typing import Dict, List, Optional

from core.config import AppSettings, settings
from models.user import UserRole
from services.passwords import PasswordManager, password_manager


logger = logging.getLogger(__name__)

# Verification order; the first role whose secret matches wins
ROLE_ORDER = (UserRole.guest, UserRole.user, UserRole.admin)

ROLE_PERMISSIONS: Dict[UserRole, List[str]] = {
    UserRole.guest: ["view_calendar", "view_bookings"],
    UserRole.user: [
        "view_calendar",
        "view_bookings",
        "create_booking",
        "edit_own_booking",
        "cancel_own_booking",
    ],
    UserRole.admin: [
        "view_calendar",
        "view_bookings",
        "create_booking",
        "edit_all_bookings",
        "cancel_all_bookings",
        "manage_users",
    ],
}

ROLE_DESCRIPTIONS: Dict[UserRole, str] = {
    UserRole.guest: "Read-only access to view calendar",
    UserRole.user: "Book and manage your own studio sessions",
    UserRole.admin: "Full access to manage all bookings and users",
}


class AccessCodeConfigError(RuntimeError):
    pass


def permissions_for_role(role: UserRole | str) -> List[str]:
    try:
        return list(ROLE_PERMISSIONS[UserRole(role)])
    except ValueError:
        return []


def timing_safe_equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class AccessCodeManager:
    """Maps shared access codes to roles.

    Each role may be configured with a bcrypt hash, a plaintext code, or both.
    When a hash is present it is the only secret checked for that role.
    """

    def __init__(
        self,
        *,
        hashes: Dict[UserRole, Optional[str]],
        plaintexts: Dict[UserRole, Optional[str]],
        passwords: PasswordManager = password_manager,
    ) -> None:
        self._hashes = {role: hashes.get(role) or None for role in ROLE_ORDER}
        self._plaintexts = {role: plaintexts.get(role) or None for role in ROLE_ORDER}
        self._passwords = passwords
        self.initialized = False

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "AccessCodeManager":
        return cls(
            hashes={
                UserRole.guest: settings.guest_access_code_hash,
                UserRole.user: settings.user_access_code_hash,
                UserRole.admin: settings.admin_access_code_hash,
            },
            plaintexts={
                UserRole.guest: settings.guest_access_code,
                UserRole.user: settings.user_access_code,
                UserRole.admin: settings.admin_access_code,
            },
        )

    def initialize(self) -> None:
        missing = [r.value for r in ROLE_ORDER if not (self._hashes[r] or self._plaintexts[r])]
        if missing:
            self.initialized = False
            raise AccessCodeConfigError(
                "All access codes must be set in environment variables (either plain or hashed); "
                f"missing: {', '.join(missing)}"
            )
        self.initialized = True
        logger.info(
            "access.codes_initialized",
            extra={
                "hashed": any(self._hashes.values()),
                "plaintext": any(self._plaintexts.values()),
            },
        )
        if any(self._plaintexts.values()):
            logger.warning("access.plaintext_codes_in_use")

    def verify(self, code: str) -> Optional[UserRole]:
        if not code:
            return None
        try:
            for role in ROLE_ORDER:
                if self._matches(code, role):
                    return role
        except (ValueError, TypeError):
            # Malformed stored hash
            logger.exception("access.verify_error")
        return None

    def _matches(self, code: str, role: UserRole) -> bool:
        hashed = self._hashes[role]
        if hashed:
            return self._passwords.verify_password(code, hashed)
        plain = self._plaintexts[role]
        if plain:
            return timing_safe_equal(code, plain)
        return False

    @staticmethod
    def access_levels() -> List[str]:
        return [role.value for role in ROLE_ORDER]

    def diagnostic(self) -> Dict[str, str]:
        report: Dict[str, str] = {}
        for role in ROLE_ORDER:
            name = role.value.upper()
            plain = self._plaintexts[role]
            report[f"{name}_ACCESS_CODE"] = f"Set ({len(plain)} chars)" if plain else "Not set"
            report[f"{name}_ACCESS_CODE_HASH"] = "Set" if self._hashes[role] else "Not set"
        return report


@lru_cache(maxsize=1)
def get_access_code_manager() -> AccessCodeManager:
    manager = AccessCodeManager.from_settings(settings)
    try:
        manager.initialize()
    except AccessCodeConfigError:
        logger.error("access.codes_not_configured", extra=manager.diagnostic())
    return manager

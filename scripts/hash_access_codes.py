"""Prompt for custom access codes and print bcrypt hashes for the .env file."""

from __future__ import annotations

from getpass import getpass
from typing import Callable, Dict, List

from services.passwords import PasswordManager


ROLES = (
    ("GUEST", "read-only access"),
    ("USER", "booking access"),
    ("ADMIN", "full management"),
)


def strength_warnings(codes: Dict[str, str], manager: PasswordManager) -> List[str]:
    warnings = []
    for role, code in codes.items():
        ok, message = manager.validate_code_strength(code)
        if not ok:
            warnings.append(f"{role}: {message}")
    return warnings


def hash_lines(codes: Dict[str, str], manager: PasswordManager) -> List[str]:
    return [f'{role}_ACCESS_CODE_HASH="{manager.hash_password(code)}"' for role, code in codes.items()]


def main(prompt: Callable[[str], str] = getpass) -> None:
    manager = PasswordManager()
    codes = {role: prompt(f"Enter {role} code ({purpose}): ") for role, purpose in ROLES}

    for warning in strength_warnings(codes, manager):
        print(f"warning: {warning}")

    print()
    print("Add these to the server .env file and remove the plaintext *_ACCESS_CODE entries:")
    print("=" * 60)
    for line in hash_lines(codes, manager):
        print(line)


if __name__ == "__main__":
    main()

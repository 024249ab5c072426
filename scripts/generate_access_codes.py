"""Print fresh access codes and their bcrypt hashes for the server's .env file."""

from __future__ import annotations

from typing import Dict

from services.passwords import PasswordManager


CODE_LENGTHS = {"GUEST": 16, "USER": 16, "ADMIN": 20}
MEMORABLE_PREFIXES = {"GUEST": ("GUEST", 6), "USER": ("BAND", 6), "ADMIN": ("ADMIN", 8)}


def generate_codes(manager: PasswordManager) -> Dict[str, str]:
    return {role: manager.generate_secure_code(length) for role, length in CODE_LENGTHS.items()}


def env_lines(codes: Dict[str, str], manager: PasswordManager) -> list[str]:
    lines = [f'{role}_ACCESS_CODE="{code}"' for role, code in codes.items()]
    lines += [f'{role}_ACCESS_CODE_HASH="{manager.hash_password(code)}"' for role, code in codes.items()]
    return lines


def memorable_codes(manager: PasswordManager) -> Dict[str, str]:
    return {
        role: manager.generate_memorable_code(prefix, length)
        for role, (prefix, length) in MEMORABLE_PREFIXES.items()
    }


def main() -> None:
    manager = PasswordManager()
    codes = generate_codes(manager)

    print("Generated access codes (plaintext and bcrypt hash):")
    print("=" * 60)
    for line in env_lines(codes, manager):
        print(line)

    print()
    print("Set either the plaintext or the hash for each role; the hash wins when both are set.")
    print("Keep the admin code to as few people as possible and rotate codes if one leaks.")

    print()
    print("Alternative memorable codes:")
    print("=" * 60)
    for role, code in memorable_codes(manager).items():
        print(f"{role}: {code}")


if __name__ == "__main__":
    main()

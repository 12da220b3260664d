from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Optional

from fastapi_users.password import PasswordHelper
from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.bcrypt import BcryptHasher

from tablebase.auth.settings import get_auth_settings
from tablebase.exceptions import ValidationError

COMMON_PASSWORDS = {"password", "123456", "qwerty", "letmein", "admin"}

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


@dataclass
class PasswordPolicy:
    min_length: int = 6
    require_upper: bool = False
    require_lower: bool = False
    require_digit: bool = False
    forbid_common: bool = False

    @classmethod
    def from_settings(cls) -> "PasswordPolicy":
        return cls(min_length=get_auth_settings().password_min_length)


class PasswordValidationError(ValidationError):
    code = "WEAK_PASSWORD"

    def __init__(self, reasons: Iterable[str]):
        self.reasons = list(reasons)
        super().__init__("Password does not meet the policy", errors=self.reasons)


UPPER = re.compile(r"[A-Z]")
LOWER = re.compile(r"[a-z]")
DIGIT = re.compile(r"[0-9]")


def validate_password(pw: str, policy: PasswordPolicy | None = None) -> None:
    policy = policy or PasswordPolicy.from_settings()
    reasons: list[str] = []
    if len(pw) < policy.min_length:
        reasons.append(f"min_length({policy.min_length})")
    if len(pw.encode("utf-8")) > BCRYPT_MAX_BYTES:
        reasons.append(f"max_bytes({BCRYPT_MAX_BYTES})")
    if policy.require_upper and not UPPER.search(pw):
        reasons.append("missing_upper")
    if policy.require_lower and not LOWER.search(pw):
        reasons.append("missing_lower")
    if policy.require_digit and not DIGIT.search(pw):
        reasons.append("missing_digit")
    if policy.forbid_common and pw.lower() in COMMON_PASSWORDS:
        reasons.append("common_password")
    if reasons:
        raise PasswordValidationError(reasons)


@lru_cache(maxsize=8)
def _helper(rounds: int) -> PasswordHelper:
    return PasswordHelper(PasswordHash((BcryptHasher(rounds=rounds),)))


def get_password_helper(rounds: Optional[int] = None) -> PasswordHelper:
    return _helper(rounds or get_auth_settings().bcrypt_rounds)


def hash_password(password: str, *, rounds: Optional[int] = None) -> str:
    """Salted bcrypt hash. CPU bound: call via ``asyncio.to_thread`` from handlers."""
    return get_password_helper(rounds).hash(password)


def verify_password(password: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        verified, _ = get_password_helper().verify_and_update(password, hashed)
    except (UnknownHashError, ValueError):
        return False
    return verified


__all__ = [
    "PasswordPolicy",
    "PasswordValidationError",
    "validate_password",
    "hash_password",
    "verify_password",
    "get_password_helper",
]

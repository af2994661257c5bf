"""
Master password policy and hashing.

The raw master password only lives long enough to be checked against the
policy and digested. Only the digest ever leaves this module.
"""

import string
from dataclasses import dataclass
from typing import Dict, Tuple

from cryptography.hazmat.primitives import hashes

from . import config
from .errors import ValidationFailure


class PasswordStrengthValidator:
    """Validates master password strength."""

    @staticmethod
    def check_strength(password: str) -> Tuple[bool, str]:
        """
        Check if password meets the master password policy.

        Any violation yields the same single message.

        Returns:
            Tuple of (is_valid, message)
        """
        long_enough = len(password) > config.PASSWORD_MIN_LENGTH_EXCLUSIVE
        has_digit = any(c in string.digits for c in password)
        has_special = any(c in config.PASSWORD_SPECIAL_CHARACTERS for c in password)

        if not (long_enough and has_digit and has_special):
            return False, config.MSG_POLICY_FAILED
        return True, ""


def check_policy(password: str) -> Tuple[bool, str]:
    """Shorthand for PasswordStrengthValidator.check_strength."""
    return PasswordStrengthValidator.check_strength(password)


def hash_master_password(password: str) -> str:
    """Return the hex SHA-256 digest of the raw master password."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(password.encode('utf-8'))
    return digest.finalize().hex()


@dataclass(frozen=True)
class MasterCredential:
    """Username plus hashed master password, ready for transmission."""
    username: str
    password: str

    @classmethod
    def from_input(cls, username: str, raw_password: str) -> 'MasterCredential':
        """
        Validate and hash user input.

        Args:
            username: Username as typed
            raw_password: Master password as typed

        Raises:
            ValidationFailure: If the password violates the policy
        """
        is_valid, message = check_policy(raw_password)
        if not is_valid:
            raise ValidationFailure(message)
        return cls(username=username, password=hash_master_password(raw_password))

    def to_payload(self) -> Dict[str, str]:
        """Request body for the add-master-password endpoint."""
        return {"username": self.username, "password": self.password}

    def __repr__(self) -> str:
        return f"MasterCredential(username={self.username!r}, password=<hashed>)"

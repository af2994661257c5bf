"""Tests for the master password policy and hashing."""

import hashlib

import pytest

from vaultshell import config
from vaultshell.errors import ValidationFailure
from vaultshell.policy import (
    MasterCredential,
    PasswordStrengthValidator,
    check_policy,
    hash_master_password,
)


class TestCheckPolicy:

    @pytest.mark.parametrize("password", [
        "LongPass1!",
        "aaaaaaaa1@",
        "123456789?",
        'quote"quote9',
        "pipes|and|braces{}0",
    ])
    def test_accepts_valid_passwords(self, password):
        assert check_policy(password) == (True, "")

    @pytest.mark.parametrize("password", [
        "abc123!",        # too short
        "abcd123!",       # exactly 8 characters
        "LongPassword!",  # no digit
        "LongPassword1",  # no symbol
        "LongPass1-",     # '-' is not in the symbol set
        "LongPass1_",
        "",
    ])
    def test_rejects_invalid_passwords_with_single_message(self, password):
        is_valid, message = check_policy(password)
        assert not is_valid
        assert message == config.MSG_POLICY_FAILED

    def test_non_ascii_digits_do_not_count(self):
        assert not check_policy("LongPass١!x")[0]

    def test_validator_matches_shorthand(self):
        assert PasswordStrengthValidator.check_strength("LongPass1!") == check_policy("LongPass1!")


class TestHashing:

    def test_is_sha256_hex_digest(self):
        assert hash_master_password("LongPass1!") == hashlib.sha256(b"LongPass1!").hexdigest()

    def test_deterministic(self):
        assert hash_master_password("LongPass1!") == hash_master_password("LongPass1!")

    def test_distinct_inputs_give_distinct_digests(self):
        assert hash_master_password("LongPass1!") != hash_master_password("LongPass1?")

    def test_never_equals_input(self):
        for password in ("", "LongPass1!", "a" * 64):
            assert hash_master_password(password) != password

    def test_fixed_output_size(self):
        assert len(hash_master_password("x")) == len(hash_master_password("y" * 500)) == 64


class TestMasterCredential:

    def test_from_input_hashes_password(self):
        cred = MasterCredential.from_input("alice", "LongPass1!")
        assert cred.username == "alice"
        assert cred.password == hashlib.sha256(b"LongPass1!").hexdigest()
        assert cred.to_payload() == {"username": "alice", "password": cred.password}

    def test_from_input_rejects_weak_password(self):
        with pytest.raises(ValidationFailure) as exc_info:
            MasterCredential.from_input("alice", "abc123!")
        assert str(exc_info.value) == config.MSG_POLICY_FAILED

    def test_repr_hides_digest(self):
        cred = MasterCredential.from_input("alice", "LongPass1!")
        assert cred.password not in repr(cred)

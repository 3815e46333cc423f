from __future__ import annotations

import pytest

from card_manager.auth import LocalAuthProvider
from card_manager.config import AppConfig
from card_manager.security import SecureString, as_secure, password_context, plaintext


@pytest.fixture()
def config() -> AppConfig:
    return AppConfig(
        argon2_time_cost=1,
        argon2_memory_cost_kib=8_192,
        argon2_parallelism=1,
        pbkdf2_iterations=1_000,
    )


@pytest.fixture()
def pbkdf2_config() -> AppConfig:
    return AppConfig(password_kdf="pbkdf2", pbkdf2_iterations=1_000)


def test_secure_string_clears_buffer():
    secret = SecureString("top secret")
    assert secret.get() == "top secret"
    secret.clear()
    assert secret.get() == ""


def test_as_secure_copies_secure_strings():
    original = SecureString("hunter22")
    copy = as_secure(original)
    copy.clear()

    assert original.get() == "hunter22"


def test_plaintext_reads_secure_strings_without_clearing():
    secret = SecureString("letmein")

    assert plaintext(secret) == "letmein"
    assert plaintext("letmein") == "letmein"
    assert secret.get() == "letmein"


def test_argon2_hash_verifies(config: AppConfig):
    context = password_context(config)
    encoded = context.hash("correct horse")

    assert encoded.startswith("$argon2id$")
    assert "m=8192,t=1,p=1" in encoded
    assert context.verify("correct horse", encoded)
    assert not context.verify("wrong horse", encoded)


def test_hashes_are_salted(config: AppConfig):
    context = password_context(config)

    assert context.hash("same password") != context.hash("same password")


def test_pbkdf2_hash_verifies(pbkdf2_config: AppConfig):
    context = password_context(pbkdf2_config)
    encoded = context.hash("letmein")

    assert encoded.startswith("$pbkdf2-sha256$1000$")
    assert context.verify("letmein", encoded)
    assert not context.verify("letmeout", encoded)


def test_pbkdf2_hashes_verify_and_are_upgraded(config: AppConfig, pbkdf2_config: AppConfig):
    encoded = password_context(pbkdf2_config).hash("letmein")

    valid, upgraded = password_context(config).verify_and_update("letmein", encoded)

    assert valid
    assert upgraded.startswith("$argon2id$")


def test_sign_in_rehashes_legacy_passwords(config: AppConfig, pbkdf2_config: AppConfig):
    auth = LocalAuthProvider(config)
    created = auth.create_user("ada@example.com", "secret1")
    account = auth._accounts[created.uid]
    account.password_hash = password_context(pbkdf2_config).hash("secret1")

    auth.sign_in("ada@example.com", SecureString("secret1"))

    assert account.password_hash.startswith("$argon2id$")
    assert auth.sign_in("ada@example.com", "secret1") == created


@pytest.mark.parametrize("encoded", ["not-a-hash", "$md5$AAAA$AAAA"])
def test_verify_rejects_unknown_hashes(config: AppConfig, encoded: str):
    with pytest.raises(ValueError):
        password_context(config).verify("password", encoded)


def test_unknown_configured_kdf_is_rejected():
    with pytest.raises(ValueError):
        password_context(AppConfig(password_kdf="scrypt"))

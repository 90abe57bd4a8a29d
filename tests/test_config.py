"""Unit tests for core/config.py -- Settings key policy and field validation.

Covers:
- Dev mode auto-generates missing keys
- Production mode refuses to start without keys
- Short keys are rejected in both modes
- Non-positive token expiry / hash rounds are rejected
- get_settings() is a cached singleton
"""

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings

_GOOD_KEY = "k" * 32


class TestKeyPolicy:
    def test_debug_generates_missing_keys(self) -> None:
        s = Settings(debug=True, secret_key="", credential_hash_key="")
        assert len(s.secret_key) >= 32
        assert len(s.credential_hash_key) >= 32
        assert s.secret_key != s.credential_hash_key

    def test_production_requires_secret_key(self) -> None:
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            Settings(debug=False, secret_key="", credential_hash_key=_GOOD_KEY)

    def test_production_requires_credential_hash_key(self) -> None:
        with pytest.raises(ValidationError, match="CREDENTIAL_HASH_KEY is required"):
            Settings(debug=False, secret_key=_GOOD_KEY, credential_hash_key="")

    def test_short_key_rejected_even_in_debug(self) -> None:
        with pytest.raises(ValidationError, match="at least 32 characters"):
            Settings(debug=True, secret_key="too-short", credential_hash_key=_GOOD_KEY)

    def test_explicit_keys_kept(self) -> None:
        s = Settings(debug=False, secret_key=_GOOD_KEY, credential_hash_key="h" * 40)
        assert s.secret_key == _GOOD_KEY
        assert s.credential_hash_key == "h" * 40


class TestFieldValidation:
    @pytest.mark.parametrize("field", ["token_expire_seconds", "credential_hash_rounds"])
    def test_zero_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError):
            Settings(debug=True, **{field: 0})

    def test_defaults(self) -> None:
        s = Settings(debug=True)
        assert s.token_expire_seconds == 3600
        assert s.credential_hash_rounds == 64
        assert s.database_url.startswith("sqlite:///")

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOKEN_EXPIRE_SECONDS", "120")
        monkeypatch.setenv("CREDENTIAL_HASH_ROUNDS", "8")
        s = Settings(debug=True)
        assert s.token_expire_seconds == 120
        assert s.credential_hash_rounds == 8


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()

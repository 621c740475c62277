import pytest

from aibot.config import Settings
from aibot.exceptions import MissingApiKeyError
from aibot.services.credential_service import decrypt_api_key, encrypt_api_key, resolve_api_key
from tests.fakes import FakeBotStore


class TestDecryptApiKey:
    def test_round_trip(self):
        encrypted = encrypt_api_key("sk-tenant-123", "secret")
        assert encrypted != "sk-tenant-123"
        assert decrypt_api_key(encrypted, "secret") == "sk-tenant-123"

    def test_key_repeats_cyclically(self):
        # "ab" XOR "k" repeated: a^k = 0x0a, b^k = 0x09
        assert encrypt_api_key("ab", "k") == "Cgk="
        assert decrypt_api_key("Cgk=", "k") == "ab"

    def test_line_wrapped_value(self):
        encrypted = encrypt_api_key("sk-tenant-wrapped-key", "secret")
        wrapped = encrypted[:8] + "\n" + encrypted[8:16] + "\r\n " + encrypted[16:]
        assert decrypt_api_key(wrapped, "secret") == "sk-tenant-wrapped-key"

    def test_malformed_base64_returns_none(self):
        assert decrypt_api_key("not base64 !!", "secret") is None

    def test_empty_returns_none(self):
        assert decrypt_api_key(None, "secret") is None
        assert decrypt_api_key("", "secret") is None


class TestResolveApiKey:
    def test_per_bot_key_wins(self, settings):
        store = FakeBotStore(credentials={"b1": encrypt_api_key("sk-bot", settings.encryption_key)})
        assert resolve_api_key(store, "b1", settings) == "sk-bot"

    def test_global_key_when_no_per_bot_key(self, settings):
        assert resolve_api_key(FakeBotStore(), "b1", settings) == "sk-global"

    def test_decrypt_failure_falls_back_to_global(self, settings):
        store = FakeBotStore(credentials={"b1": "%%%broken%%%"})
        assert resolve_api_key(store, "b1", settings) == "sk-global"

    def test_no_key_at_all_raises(self):
        settings = Settings(openai_api_key=None, _env_file=None)
        with pytest.raises(MissingApiKeyError) as exc_info:
            resolve_api_key(FakeBotStore(), "b1", settings)
        assert exc_info.value.status_code == 400
        assert "No API key configured" in exc_info.value.message

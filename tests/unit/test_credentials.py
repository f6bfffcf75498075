"""Unit tests for encrypted API key storage."""

import stat

import pytest
from cryptography.fernet import Fernet

from settlescan.catalog import Provider
from settlescan.credentials import CredentialStore, is_usable_key

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "GEMINI_API_KEY",
        "OPENAI_API_KEY",
        "UPSTAGE_API_KEY",
        "CLAUDE_API_KEY",
        "SETTLESCAN_SECRET_KEY",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def store(tmp_path):
    return CredentialStore(tmp_path)


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("sk-real", True),
        ("", False),
        (None, False),
        ("input_your_api_key_here", False),
    ],
)
def test_is_usable_key(key, expected):
    assert is_usable_key(key) is expected


class TestCredentialStore:
    """Test cases for CredentialStore."""

    def test_keys_are_encrypted_at_rest(self, store, tmp_path):
        store.set(Provider.OPENAI, "sk-secret")

        assert "sk-secret" not in store.path.read_text(encoding="utf-8")
        assert store.load() == {Provider.OPENAI: "sk-secret"}

    def test_secret_key_file_is_owner_only(self, store, tmp_path):
        store.set(Provider.GEMINI, "g-key")

        mode = (tmp_path / "secret.key").stat().st_mode
        assert stat.S_IMODE(mode) == 0o600

    def test_secret_key_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SETTLESCAN_SECRET_KEY", Fernet.generate_key().decode())
        store = CredentialStore(tmp_path)

        store.set(Provider.UPSTAGE, "up-key")

        assert not (tmp_path / "secret.key").exists()
        assert CredentialStore(tmp_path).get(Provider.UPSTAGE) == "up-key"

    def test_environment_wins_over_store(self, store, monkeypatch):
        store.set(Provider.GEMINI, "stored")
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")

        assert store.get(Provider.GEMINI) == "from-env"

    def test_placeholder_env_falls_back_to_store(self, store, monkeypatch):
        store.set(Provider.GEMINI, "stored")
        monkeypatch.setenv("GEMINI_API_KEY", "input_your_api_key")

        assert store.get(Provider.GEMINI) == "stored"

    def test_clear_one_provider(self, store):
        store.set(Provider.GEMINI, "g")
        store.set(Provider.OPENAI, "o")

        store.clear(Provider.GEMINI)

        assert store.load() == {Provider.OPENAI: "o"}

    def test_clear_all(self, store):
        store.set(Provider.GEMINI, "g")

        store.clear()

        assert store.load() == {}

    def test_entries_from_another_key_are_skipped(self, store, tmp_path):
        store.set(Provider.OPENAI, "o")
        other = CredentialStore(tmp_path / "elsewhere")
        other.set(Provider.GEMINI, "g")

        store.path.write_text(other.path.read_text(encoding="utf-8"), encoding="utf-8")

        assert store.load() == {}

    def test_has_credential(self, store):
        assert store.has_credential(Provider.OLLAMA) is True
        assert store.has_credential(Provider.CLAUDE) is False

        store.set(Provider.CLAUDE, "c")

        assert store.has_credential(Provider.CLAUDE) is True

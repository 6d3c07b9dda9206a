"""Tests for session-scoped verifier and token storage."""

from pkceflow.auth.client.models.tokens import TokenSet
from pkceflow.auth.client.storage import (
    CODE_VERIFIER_KEY,
    TOKENS_KEY,
    MemorySessionStorage,
    TokenStore,
    VerifierStore,
)


class TestVerifierStore:
    def setup_method(self):
        self.storage = MemorySessionStorage()
        self.verifiers = VerifierStore(self.storage)

    def test_load_from_empty_storage_returns_none(self):
        assert self.verifiers.load_verifier() is None
        assert self.verifiers.load_state() is None

    def test_store_load_clear(self):
        # Act
        self.verifiers.store_verifier("v" * 43)

        # Assert
        assert self.verifiers.load_verifier() == "v" * 43
        assert self.storage.get(CODE_VERIFIER_KEY) == "v" * 43

        self.verifiers.clear_verifier()
        assert self.verifiers.load_verifier() is None

    def test_empty_value_is_treated_as_missing(self):
        self.storage.set(CODE_VERIFIER_KEY, "")

        assert self.verifiers.load_verifier() is None

    def test_clear_verifier_leaves_other_keys(self):
        # Arrange
        self.verifiers.store_verifier("v" * 43)
        self.verifiers.store_state("state-123")

        # Act
        self.verifiers.clear_verifier()

        # Assert
        assert self.verifiers.load_state() == "state-123"

    def test_clear_when_absent_is_a_no_op(self):
        self.verifiers.clear_verifier()
        self.verifiers.clear_state()

        assert len(self.storage) == 0

    def test_two_stores_over_one_session_agree(self):
        # Arrange - separate page loads share the session storage
        VerifierStore(self.storage).store_verifier("shared-verifier" * 3)

        # Act & Assert
        assert VerifierStore(self.storage).load_verifier() == "shared-verifier" * 3


class TestTokenStore:
    def setup_method(self):
        self.storage = MemorySessionStorage()
        self.tokens = TokenStore(self.storage)

    def test_round_trip_preserves_fields(self):
        # Arrange
        token_set = TokenSet(
            access_token="abc",
            id_token="def",
            expires_in=3600,
            raw={"access_token": "abc", "custom": "x"},
        )

        # Act
        self.tokens.save(token_set)
        loaded = self.tokens.load()

        # Assert
        assert loaded == token_set
        assert loaded.refresh_token is None
        assert loaded.raw["custom"] == "x"

    def test_load_empty_returns_none(self):
        assert self.tokens.load() is None

    def test_corrupt_entry_is_discarded(self):
        # Arrange
        self.storage.set(TOKENS_KEY, "{not json")

        # Act & Assert
        assert self.tokens.load() is None
        assert TOKENS_KEY not in self.storage

    def test_clear(self):
        self.tokens.save(TokenSet(access_token="abc"))

        self.tokens.clear()

        assert self.tokens.load() is None

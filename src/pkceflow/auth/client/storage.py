"""Session-scoped storage for values that outlive a single page load.

The verifier is written before the authorization redirect and read back when
the callback arrives, so both steps share one injected ``SessionStorage``
instead of reaching into global state.
"""

from __future__ import annotations

import json
import logging
from typing import Protocol

from pydantic import ValidationError

from pkceflow.auth.client.models.tokens import TokenSet

logger = logging.getLogger(__name__)

CODE_VERIFIER_KEY = "code_verifier"
STATE_KEY = "oauth_state"
TOKENS_KEY = "tokens"


class SessionStorage(Protocol):
    """Key/value storage scoped to one logical browsing session."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStorage:
    """In-memory session storage for tests and single-process use."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class VerifierStore:
    """Holds the code verifier and state between redirect and callback.

    One writer (login start) and one reader (callback) run sequentially, so
    no locking is needed. The reader must tolerate an empty store.
    """

    def __init__(self, storage: SessionStorage):
        self._storage = storage

    def store_verifier(self, verifier: str) -> None:
        self._storage.set(CODE_VERIFIER_KEY, verifier)

    def load_verifier(self) -> str | None:
        return self._storage.get(CODE_VERIFIER_KEY) or None

    def clear_verifier(self) -> None:
        self._storage.delete(CODE_VERIFIER_KEY)

    def store_state(self, state: str) -> None:
        self._storage.set(STATE_KEY, state)

    def load_state(self) -> str | None:
        return self._storage.get(STATE_KEY) or None

    def clear_state(self) -> None:
        self._storage.delete(STATE_KEY)


class TokenStore:
    """Persists the current Token Set as JSON in session storage."""

    def __init__(self, storage: SessionStorage):
        self._storage = storage

    def save(self, tokens: TokenSet) -> None:
        self._storage.set(TOKENS_KEY, tokens.model_dump_json())

    def load(self) -> TokenSet | None:
        """Load the stored Token Set.

        A corrupt entry is dropped and treated as absent.
        """
        data = self._storage.get(TOKENS_KEY)
        if not data:
            return None

        try:
            return TokenSet.model_validate_json(data)
        except (ValidationError, json.JSONDecodeError) as e:
            logger.warning(f"Discarding unreadable stored tokens: {e}")
            self._storage.delete(TOKENS_KEY)
            return None

    def clear(self) -> None:
        self._storage.delete(TOKENS_KEY)

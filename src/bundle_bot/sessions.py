"""Per-user dialogue sessions."""

from __future__ import annotations

from .fsm import Step, parent_of
from .models import Session
from .stores import InMemoryStore, Store


class SessionStore:
    """Holds one ephemeral session per user.

    Sessions are replaced wholesale on every transition and never expire.
    """

    def __init__(self, store: Store[str, Session] | None = None) -> None:
        self._store: Store[str, Session] = (
            store if store is not None else InMemoryStore()
        )

    def get(self, user: str) -> Session:
        session = self._store.get(user)
        return session if session is not None else Session()

    def enter(self, user: str, step: Step, **fields: object) -> Session:
        """Move ``user`` to ``step``, keeping only the given transient fields.

        ``prev_step`` always points at the step ``"0"`` should lead back to.
        """

        session = Session.model_validate(
            {"step": step, "prev_step": parent_of(step), **fields}
        )
        self._store.put(user, session)
        return session

    def reset(self, user: str) -> Session:
        return self.enter(user, Step.MAIN)

    def __contains__(self, user: object) -> bool:
        return user in self._store

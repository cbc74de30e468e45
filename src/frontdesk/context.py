"""Per-session state shared by the tool handlers.

The agent often omits the patient id in follow-up calls ("what are her lab
results?"). The session context remembers the patient most recently matched
by a search so those calls can still be answered.

It holds a single slot: a later search overwrites it, nothing clears it,
and it makes no promise of being the patient the caller has in mind.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field

from frontdesk.config import SESSION_IDLE_TTL, SESSION_MAX_ENTRIES
from frontdesk.errors import NO_IDENTIFIER_MESSAGE, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Best-effort memory of the current patient for one agent session."""

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    primary_resource_id: str | None = None

    def remember(self, resource_id: str) -> None:
        """Overwrite the remembered patient id (last writer wins)."""
        if self.primary_resource_id != resource_id:
            logger.info(
                "Session %s: current patient is now %s", self.session_id, resource_id
            )
        self.primary_resource_id = resource_id

    def resolve(self, explicit_id: str | None) -> str:
        """Pick the patient id for a patient-scoped call.

        Args:
            explicit_id: The id passed in the call's arguments, if any.

        Returns:
            explicit_id when non-empty, otherwise the remembered id.

        Raises:
            ValidationError: If neither is available.
        """
        if explicit_id:
            return explicit_id
        if self.primary_resource_id:
            logger.debug(
                "Session %s: using remembered patient %s",
                self.session_id,
                self.primary_resource_id,
            )
            return self.primary_resource_id
        raise ValidationError(NO_IDENTIFIER_MESSAGE)


class SessionStore:
    """In-memory session contexts for the HTTP surface, keyed by session id.

    The store is bounded. A session left unused for `idle_ttl` seconds is
    forgotten, and past `max_sessions` the least recently used session is
    evicted. A forgotten id that comes back starts over with an empty
    context, exactly like a new session.
    """

    def __init__(
        self,
        max_sessions: int = SESSION_MAX_ENTRIES,
        idle_ttl: float | None = SESSION_IDLE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._max_sessions = max_sessions
        self._idle_ttl = idle_ttl if idle_ttl and idle_ttl > 0 else None
        self._clock = clock
        # Ordered from least to most recently used: (context, last used at)
        self._sessions: OrderedDict[str, tuple[SessionContext, float]] = OrderedDict()

    def get_or_create(self, session_id: str | None = None) -> SessionContext:
        """Return the context for session_id, creating it on first use."""
        now = self._clock()
        self._expire(now)
        if session_id and session_id in self._sessions:
            context, _ = self._sessions[session_id]
        else:
            context = SessionContext(session_id=session_id) if session_id else SessionContext()
        self._sessions[context.session_id] = (context, now)
        self._sessions.move_to_end(context.session_id)
        while len(self._sessions) > self._max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Session %s evicted (store full)", evicted)
        return context

    def _expire(self, now: float) -> None:
        if self._idle_ttl is None:
            return
        while self._sessions:
            oldest = next(iter(self._sessions))
            _, last_used = self._sessions[oldest]
            if now - last_used <= self._idle_ttl:
                break
            del self._sessions[oldest]
            logger.info("Session %s expired after %.0fs idle", oldest, now - last_used)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

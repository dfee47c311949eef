"""
Build Session Manager - Creates and manages in-progress builds.

LIFECYCLE:
1. Client picks a library → create session (in-memory only)
2. During the build:
   - Client adopts root features
   - Client records choices as options are revealed
   - Client evaluates to see the character so far
3. Build finished or abandoned → session destroyed

PERSISTENCE RULES:
- NO database
- Sessions hold decisions, not results; every evaluation starts fresh
- Libraries are shared read-only between sessions
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import logging
import random
import time
import uuid

from ..engine_core import BuildError, BuildResolver, Character, FeatureStore

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a build session."""
    CREATED = "created"  # No evaluation yet
    EVALUATED = "evaluated"  # Last evaluation succeeded
    FAILED = "failed"  # Last evaluation raised
    CLOSED = "closed"  # Ended by the client or cleanup


@dataclass
class BuildSession:
    """
    An ephemeral build session.

    Contains:
    - The library the build resolves against
    - The resolver holding adopted features and decisions
    - The outcome of the latest evaluation

    A failed evaluation clears `character`; a partial character is
    never kept.
    """
    session_id: str
    library_id: str
    resolver: BuildResolver
    created_at: float
    seed: int | None = None

    state: SessionState = SessionState.CREATED
    character: Character | None = None
    last_error: str | None = None
    updated_at: float = 0.0

    def is_active(self) -> bool:
        return self.state is not SessionState.CLOSED

    def adopt(self, feature_id: str):
        self.resolver.adopt_feature(feature_id)
        self.updated_at = time.time()

    def choose(self, choice_id: str, feature_id: str):
        self.resolver.record_choice(choice_id, feature_id)
        self.updated_at = time.time()

    def _roll_source(self) -> random.Random | None:
        # Fresh source per evaluation: rolls depend on the seed alone.
        if self.seed is None:
            return None
        return random.Random(self.seed)

    def evaluate(self) -> Character:
        """
        Evaluate the build.

        Re-raises any BuildError after recording it on the session.
        """
        self.updated_at = time.time()
        try:
            character = self.resolver.evaluate(rng=self._roll_source())
        except BuildError as e:
            self.state = SessionState.FAILED
            self.character = None
            self.last_error = str(e)
            logger.info("Build %s failed: %s", self.session_id, e)
            raise

        self.state = SessionState.EVALUATED
        self.character = character
        self.last_error = None
        return character


class SessionManager:
    """
    Manages build sessions.

    Responsibilities:
    - Create sessions against a feature store
    - Track active sessions
    - Clean up idle sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(self):
        self._sessions: dict[str, BuildSession] = {}

    def create_session(
        self,
        library_id: str,
        store: FeatureStore,
        seed: int | None = None,
    ) -> BuildSession:
        """
        Create a new build session.

        Args:
            library_id: ID of the library the store was built from
            store: Feature store to resolve against
            seed: Seed for roll traits; one is drawn when omitted so
                that re-evaluating the build keeps its rolls

        Returns:
            New BuildSession with nothing adopted
        """
        if seed is None:
            seed = random.randrange(2**32)
        session_id = str(uuid.uuid4())
        now = time.time()
        session = BuildSession(
            session_id=session_id,
            library_id=library_id,
            resolver=BuildResolver(store),
            created_at=now,
            updated_at=now,
            seed=seed,
        )
        self._sessions[session_id] = session
        logger.info("Created build %s on library '%s'", session_id, library_id)
        return session

    def get_session(self, session_id: str) -> BuildSession | None:
        return self._sessions.get(session_id)

    def end_session(self, session_id: str) -> bool:
        """Remove a session. Returns False if it did not exist."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.state = SessionState.CLOSED
        session.character = None
        logger.info("Ended build %s", session_id)
        return True

    def list_active_sessions(self) -> list[str]:
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> int:
        """
        End sessions idle for longer than max_age_seconds.

        Returns the number of sessions removed.
        """
        current_time = time.time()
        stale = [
            sid for sid, session in self._sessions.items()
            if current_time - session.updated_at > max_age_seconds
        ]
        for session_id in stale:
            self.end_session(session_id)
        return len(stale)

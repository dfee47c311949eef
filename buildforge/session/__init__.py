"""
Session Module - Manages ephemeral build sessions.

A session represents one character being built:
- Created when a client starts a build against a library
- Holds adopted features and recorded choices
- Evaluates on demand
- Destroyed when the client ends it

Sessions are EPHEMERAL: no persistence to a database.
"""

from .manager import SessionManager, BuildSession, SessionState

__all__ = [
    "SessionManager",
    "BuildSession",
    "SessionState",
]

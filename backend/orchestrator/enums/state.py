"""
Session lifecycle enumeration.

Rules:
- This enum defines ONLY the lifecycle states of one session handle.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class SessionStatus(str, Enum):
    """
    Lifecycle of the single live connection to the remote service.

    IDLE -> CONNECTING -> OPEN -> CLOSING -> CLOSED
    ERRORED is absorbing for the handle that entered it; a new handle
    starts again from CONNECTING.
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"
    ERRORED = "ERRORED"

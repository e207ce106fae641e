"""
Service enumeration for run-id–versioned collaborator calls.

Rules:
- This enum identifies versioned external collaborators only.
- It must NOT encode behavior or lifecycle rules.
- Reducer logic decides how calls are started, canceled, and reset.
"""

from __future__ import annotations

from enum import Enum


class Service(str, Enum):
    """
    External, versioned collaborators driven by the orchestrator.

    Each service:
    - Has at most one active run at a time
    - Is identified by a monotonically increasing run_id
    """

    CAPTURE = "CAPTURE"
    TRANSCRIPTION = "TRANSCRIPTION"
    ENHANCEMENT = "ENHANCEMENT"

"""Error types surfaced by ingestion and session persistence."""

from __future__ import annotations


class FormatError(ValueError):
    """
    An upload could not be turned into a FeatureCollection.

    Covers unrecognized or incomplete file combinations, corrupt archives,
    malformed JSON, and undecodable shape records. `reason` is meant to be
    shown to the user verbatim.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class SessionError(ValueError):
    """A persisted session file exists but cannot be read back."""

"""Shared engine instance for the API layer."""

from __future__ import annotations

from wavesketch.engine import SynthEngine

_engine: SynthEngine | None = None


def get_engine() -> SynthEngine:
    """Process-wide engine, created on first use."""
    global _engine
    if _engine is None:
        _engine = SynthEngine()
    return _engine

"""
Observability Module
====================

Error reporting for the realtime client.

This module provides:
    - ErrorReporter: Counts, logs and fans out non-fatal errors

DESIGN RULES:
    - Does NOT import stream or sync logic
    - Does NOT influence display state
"""

from lightning_realtime.observability.reporter import ErrorReporter


__all__ = [
    "ErrorReporter",
]

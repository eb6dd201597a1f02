"""Forge access layer for GitNarrator.

This package provides:
- Rolling-window admission control (RequestGate)
- Outcome classification and the single rate-limit retry (RetryPolicy)
- The GitHub REST client (ForgeClient)
- Value types for tree entries and READMEs (PathEntry, Readme)
"""

from narrator.app.forge.client import ForgeClient
from narrator.app.forge.gate import RequestGate
from narrator.app.forge.models import EntryKind, PathEntry, Readme
from narrator.app.forge.retry import (
    Forbidden,
    NetworkFailure,
    NotFound,
    Outcome,
    RateLimited,
    RetryPolicy,
    Success,
    Transient,
    Unauthorized,
)

__all__ = [
    # Gate
    "RequestGate",
    # Client
    "ForgeClient",
    # Models
    "EntryKind",
    "PathEntry",
    "Readme",
    # Outcomes
    "Outcome",
    "Success",
    "RateLimited",
    "NotFound",
    "Unauthorized",
    "Forbidden",
    "Transient",
    "NetworkFailure",
    "RetryPolicy",
]

"""Core utilities for the GitNarrator application."""

from narrator.app.core.config import Settings, settings
from narrator.app.core.http_client import create_http_client, init_http_client
from narrator.app.core.logging import get_log_context, get_logger, setup_logging
from narrator.app.core.utils import RepoRef, parse_repo_url

__all__ = [
    "Settings",
    "settings",
    "create_http_client",
    "init_http_client",
    "get_log_context",
    "get_logger",
    "setup_logging",
    "RepoRef",
    "parse_repo_url",
]

import json
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_IGNORE_NAMES = [
    "node_modules",
    ".git",
    "dist",
    "build",
    "coverage",
    ".vscode",
    "assets",
    "images",
]


def _parse_name_list(raw: Any) -> list[str]:
    """Accept a JSON list or a comma/whitespace separated string."""
    if raw is None:
        return []
    if isinstance(raw, (list, tuple, set, frozenset)):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return [str(v).strip() for v in parsed if str(v).strip()]

    # Deduplicate while preserving order.
    seen: set[str] = set()
    result: list[str] = []
    for part in re.split(r"[,\s]+", raw):
        if part and part not in seen:
            seen.add(part)
            result.append(part)
    return result


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # Forge (GitHub REST API) settings
    github_api_base_url: str = "https://api.github.com"
    github_token: str = ""

    # Request gate: rolling-window budget shared by every forge call
    gate_max_requests: int = 60  # anonymous budget per window
    gate_authenticated_max_requests: int = 5000
    gate_window_seconds: float = 3600.0
    gate_safety_margin_seconds: float = 1.0

    # Added on top of the server-declared reset before the single retry
    rate_limit_retry_margin_seconds: float = 1.0

    # Listing sizes
    branches_per_page: int = 100
    max_branch_pages: int = 10
    commits_per_page: int = 100
    contributors_per_page: int = 10

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 10.0
    httpx_read_timeout: float = 30.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 20
    httpx_max_keepalive_connections: int = 10

    # Text generation (OpenAI-compatible). Empty key disables advanced features.
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-3.5-turbo"
    openai_timeout: float = 30.0
    openai_max_tokens: int = 500

    # Diagram settings
    diagram_max_nodes: int = 50
    diagram_max_depth: int = 3
    diagram_ignore_names: Annotated[list[str], NoDecode] = list(DEFAULT_IGNORE_NAMES)
    advanced_context_max_chars: int = 2000

    # CORS settings
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("diagram_ignore_names", "cors_origins", mode="before")
    @classmethod
    def decode_name_list(cls, v: Any) -> list[str]:
        return _parse_name_list(v)

    @field_validator(
        "gate_max_requests",
        "gate_authenticated_max_requests",
        "branches_per_page",
        "max_branch_pages",
        "commits_per_page",
        "contributors_per_page",
        "httpx_max_connections",
        "httpx_max_keepalive_connections",
        "openai_max_tokens",
        "diagram_max_nodes",
        "diagram_max_depth",
        "advanced_context_max_chars",
    )
    @classmethod
    def validate_count_positive(cls, v: int) -> int:
        """Validate counts and limits are at least 1."""
        if v < 1:
            raise ValueError("count and limit values must be at least 1")
        return v

    @field_validator(
        "gate_window_seconds",
        "httpx_connect_timeout",
        "httpx_read_timeout",
        "httpx_write_timeout",
        "httpx_pool_timeout",
        "openai_timeout",
    )
    @classmethod
    def validate_duration_positive(cls, v: float) -> float:
        """Validate windows and timeouts are positive."""
        if v <= 0:
            raise ValueError("duration values must be positive")
        return v

    @field_validator("gate_safety_margin_seconds", "rate_limit_retry_margin_seconds")
    @classmethod
    def validate_margin_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("safety margins cannot be negative")
        return v

    @field_validator("github_token", "openai_api_key")
    @classmethod
    def strip_credential(cls, v: str) -> str:
        return v.strip()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.github_token)

    @property
    def effective_gate_max_requests(self) -> int:
        """Budget for the request gate; a token grants the larger allowance."""
        if self.is_authenticated:
            return self.gate_authenticated_max_requests
        return self.gate_max_requests

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()

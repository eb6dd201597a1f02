import pytest
from pydantic import ValidationError

from narrator.app.core.config import DEFAULT_IGNORE_NAMES, Settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.github_api_base_url == "https://api.github.com"
    assert settings.gate_max_requests == 60
    assert settings.gate_window_seconds == 3600.0
    assert settings.diagram_max_nodes == 50
    assert settings.diagram_ignore_names == DEFAULT_IGNORE_NAMES
    assert settings.cors_origins == ["*"]


def test_token_switches_budget(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "  ghp_abc  ")

    settings = Settings(_env_file=None)
    assert settings.github_token == "ghp_abc"
    assert settings.is_authenticated is True
    assert settings.effective_gate_max_requests == settings.gate_authenticated_max_requests


def test_blank_token_is_anonymous(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "   ")

    settings = Settings(_env_file=None)
    assert settings.is_authenticated is False
    assert settings.effective_gate_max_requests == 60


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("vendor,dist", ["vendor", "dist"]),
        ("vendor dist vendor", ["vendor", "dist"]),
        ('["vendor", "target"]', ["vendor", "target"]),
        ("[]", []),
        ("", []),
    ],
)
def test_ignore_names_parsing_variants(monkeypatch, raw: str, expected: list[str]) -> None:
    monkeypatch.setenv("DIAGRAM_IGNORE_NAMES", raw)

    settings = Settings(_env_file=None)
    assert settings.diagram_ignore_names == expected


def test_cors_origins_from_env(monkeypatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", '["http://localhost:5173"]')

    settings = Settings(_env_file=None)
    assert settings.cors_origins == ["http://localhost:5173"]


@pytest.mark.parametrize(
    "field, value",
    [
        ("gate_max_requests", 0),
        ("max_branch_pages", 0),
        ("diagram_max_depth", 0),
        ("gate_window_seconds", 0),
        ("httpx_read_timeout", -1),
        ("gate_safety_margin_seconds", -0.5),
    ],
)
def test_rejects_invalid_values(field: str, value) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})

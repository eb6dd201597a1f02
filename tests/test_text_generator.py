"""Tests for the OpenAI-compatible text generator and the summaries built on it."""

import json
from datetime import datetime, timezone

import httpx
import pytest
import respx

from narrator.app.core.config import Settings
from narrator.app.providers.openai import OpenAITextGenerator, build_text_generator
from narrator.app.services import summaries
from narrator.app.services.models import (
    AnalysisRecord,
    ModuleStat,
    RepositoryInfo,
    StructureInfo,
    Technologies,
)

BASE_URL = "https://llm.example.com/v1"


@pytest.fixture
def generator():
    return OpenAITextGenerator(base_url=BASE_URL, api_key="sk-test", model="test-model")


def completion(text: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})


@pytest.fixture
def record():
    return AnalysisRecord(
        repository=RepositoryInfo(owner="octo", name="demo", full_name="octo/demo", stars=7),
        branch="main",
        structure=StructureInfo(total_files=3, modules=[ModuleStat(name="Tests", file_count=1)]),
        technologies=Technologies(languages=["Python"]),
        analysis_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestOpenAITextGenerator:
    @pytest.mark.asyncio
    async def test_generate_returns_content(self, generator):
        with respx.mock:
            route = respx.post(f"{BASE_URL}/chat/completions").mock(return_value=completion("Hello"))
            text = await generator.generate("Say hello", system_prompt="Be brief")

        assert text == "Hello"
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "test-model"
        assert body["messages"][0] == {"role": "system", "content": "Be brief"}
        assert body["messages"][1] == {"role": "user", "content": "Say hello"}

    @pytest.mark.asyncio
    async def test_http_error_is_unavailable(self, generator):
        with respx.mock:
            respx.post(f"{BASE_URL}/chat/completions").mock(return_value=httpx.Response(503))
            assert await generator.generate("x") is None

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self, generator):
        with respx.mock:
            respx.post(f"{BASE_URL}/chat/completions").mock(side_effect=httpx.ConnectError("down"))
            assert await generator.generate("x") is None

    @pytest.mark.asyncio
    async def test_unexpected_payload_is_unavailable(self, generator):
        with respx.mock:
            respx.post(f"{BASE_URL}/chat/completions").mock(
                return_value=httpx.Response(200, json={"choices": []})
            )
            assert await generator.generate("x") is None

    @pytest.mark.asyncio
    async def test_health_check(self, generator):
        with respx.mock:
            respx.get(f"{BASE_URL}/models").mock(return_value=httpx.Response(200, json={"data": []}))
            assert await generator.health_check() is True


class TestBuildTextGenerator:
    def test_absent_without_key(self):
        assert build_text_generator(Settings(_env_file=None, openai_api_key="")) is None

    def test_configured_with_key(self):
        generator = build_text_generator(
            Settings(_env_file=None, openai_api_key=" sk-abc ", openai_model="m1")
        )
        assert isinstance(generator, OpenAITextGenerator)
        assert generator.api_key == "sk-abc"
        assert generator.model == "m1"


class TestSummaries:
    @pytest.mark.asyncio
    async def test_absent_generator_gives_none(self, record):
        assert await summaries.explain_code(None, "a.py", "print(1)") is None
        assert await summaries.architecture_summary(None, record) is None
        assert await summaries.project_overview(None, record) is None

    @pytest.mark.asyncio
    async def test_explain_code_caps_content(self, generator):
        with respx.mock:
            route = respx.post(f"{BASE_URL}/chat/completions").mock(return_value=completion("It prints."))
            text = await summaries.explain_code(generator, "src/app.py", "x" * 5000, mode="advanced")

        assert text == "It prints."
        prompt = json.loads(route.calls.last.request.content)["messages"][1]["content"]
        assert "py file" in prompt
        assert "x" * 2000 in prompt
        assert "x" * 2001 not in prompt

    @pytest.mark.asyncio
    async def test_explain_code_rejects_unknown_mode(self, generator):
        with pytest.raises(ValueError):
            await summaries.explain_code(generator, "a.py", "", mode="expert")

    @pytest.mark.asyncio
    async def test_architecture_summary_prompt(self, generator, record):
        with respx.mock:
            route = respx.post(f"{BASE_URL}/chat/completions").mock(return_value=completion("Layered."))
            text = await summaries.architecture_summary(generator, record)

        assert text == "Layered."
        prompt = json.loads(route.calls.last.request.content)["messages"][1]["content"]
        assert "Languages: Python" in prompt
        assert "Modules: Tests" in prompt
        assert "Total Files: 3" in prompt

    @pytest.mark.asyncio
    async def test_project_overview_unavailable(self, generator, record):
        with respx.mock:
            respx.post(f"{BASE_URL}/chat/completions").mock(return_value=httpx.Response(500))
            assert await summaries.project_overview(generator, record) is None

"""Tests for the forge client using mocked HTTP."""

import base64

import httpx
import pytest
import respx

from narrator.app.exceptions import (
    ForbiddenError,
    NetworkFailure,
    NotFoundError,
    RateLimitExceeded,
    TransientError,
    UnauthorizedError,
)
from narrator.app.forge.client import ForgeClient
from narrator.app.forge.gate import RequestGate
from narrator.app.forge.models import EntryKind

API = "https://api.github.com"
NOW = 1_700_000_000.0


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def gate():
    return RequestGate(max_requests=100, window_seconds=3600)


@pytest.fixture
def client(gate, sleeper):
    return ForgeClient(gate=gate, base_url=API, sleep=sleeper, wall_clock=lambda: NOW)


def rate_limited_response(reset_in: float = 5.0) -> httpx.Response:
    return httpx.Response(
        403,
        headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": str(int(NOW + reset_in))},
        json={"message": "API rate limit exceeded"},
    )


def encoded(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class TestExecute:
    @pytest.mark.asyncio
    async def test_returns_payload(self, client):
        with respx.mock:
            respx.get(f"{API}/repos/octo/demo").mock(
                return_value=httpx.Response(200, json={"full_name": "octo/demo"})
            )
            data = await client.get_repo_details("octo", "demo")
        assert data["full_name"] == "octo/demo"

    @pytest.mark.asyncio
    async def test_sends_standard_headers(self, gate):
        client = ForgeClient(gate=gate, base_url=API, token="ghp_secret")
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo").mock(
                return_value=httpx.Response(200, json={})
            )
            await client.get_repo_details("octo", "demo")
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer ghp_secret"
        assert request.headers["Accept"] == "application/vnd.github+json"

    @pytest.mark.asyncio
    async def test_omits_authorization_without_token(self, client):
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo").mock(
                return_value=httpx.Response(200, json={})
            )
            await client.get_repo_details("octo", "demo")
        assert "Authorization" not in route.calls.last.request.headers

    @pytest.mark.asyncio
    async def test_rate_limited_twice_raises_after_single_retry(self, client, gate, sleeper):
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo").mock(
                side_effect=[rate_limited_response(), rate_limited_response()]
            )
            with pytest.raises(RateLimitExceeded) as exc_info:
                await client.get_repo_details("octo", "demo")

        assert route.call_count == 2
        assert sleeper.delays == [pytest.approx(6.0)]
        assert exc_info.value.reset_at == NOW + 5
        assert gate.in_window() == 2

    @pytest.mark.asyncio
    async def test_rate_limit_then_success(self, client, sleeper):
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo").mock(
                side_effect=[rate_limited_response(), httpx.Response(200, json={"id": 1})]
            )
            data = await client.get_repo_details("octo", "demo")

        assert data == {"id": 1}
        assert route.call_count == 2
        assert len(sleeper.delays) == 1

    @pytest.mark.asyncio
    async def test_plain_403_is_forbidden_without_retry(self, client, sleeper):
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo").mock(
                return_value=httpx.Response(
                    403,
                    headers={"x-ratelimit-remaining": "42"},
                    json={"message": "Repository access blocked"},
                )
            )
            with pytest.raises(ForbiddenError) as exc_info:
                await client.get_repo_details("octo", "demo")

        assert route.call_count == 1
        assert sleeper.delays == []
        assert exc_info.value.reason == "Repository access blocked"

    @pytest.mark.asyncio
    async def test_not_found(self, client):
        with respx.mock:
            respx.get(f"{API}/repos/octo/missing").mock(
                return_value=httpx.Response(404, json={"message": "Not Found"})
            )
            with pytest.raises(NotFoundError):
                await client.get_repo_details("octo", "missing")

    @pytest.mark.asyncio
    async def test_unauthorized(self, client):
        with respx.mock:
            respx.get(f"{API}/repos/octo/demo").mock(
                return_value=httpx.Response(401, json={"message": "Bad credentials"})
            )
            with pytest.raises(UnauthorizedError):
                await client.get_repo_details("octo", "demo")

    @pytest.mark.asyncio
    async def test_server_error_is_transient_without_retry(self, client):
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo").mock(return_value=httpx.Response(500))
            with pytest.raises(TransientError) as exc_info:
                await client.get_repo_details("octo", "demo")
        assert route.call_count == 1
        assert exc_info.value.upstream_status == 500

    @pytest.mark.asyncio
    async def test_connection_failure_is_offline(self, client):
        with respx.mock:
            respx.get(f"{API}/repos/octo/demo").mock(
                side_effect=httpx.ConnectError("connection refused")
            )
            with pytest.raises(NetworkFailure) as exc_info:
                await client.get_repo_details("octo", "demo")
        assert exc_info.value.offline is True


class TestAccessors:
    @pytest.mark.asyncio
    async def test_readme_is_decoded(self, client):
        with respx.mock:
            respx.get(f"{API}/repos/octo/demo/readme").mock(
                return_value=httpx.Response(
                    200,
                    json={
                        "name": "README.md",
                        "path": "README.md",
                        "encoding": "base64",
                        "content": encoded("# Demo\n"),
                    },
                )
            )
            readme = await client.get_readme("octo", "demo")
        assert readme.name == "README.md"
        assert readme.content == "# Demo\n"

    @pytest.mark.asyncio
    async def test_missing_readme_is_none(self, client):
        with respx.mock:
            respx.get(f"{API}/repos/octo/demo/readme").mock(
                return_value=httpx.Response(404, json={"message": "Not Found"})
            )
            assert await client.get_readme("octo", "demo") is None

    @pytest.mark.asyncio
    async def test_tree_drops_submodules(self, client):
        tree = {
            "truncated": False,
            "tree": [
                {"path": "src", "type": "tree"},
                {"path": "src/app.py", "type": "blob", "size": 120},
                {"path": "vendor/lib", "type": "commit"},
            ],
        }
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo/git/trees/main").mock(
                return_value=httpx.Response(200, json=tree)
            )
            entries = await client.get_tree("octo", "demo", "main")

        assert route.calls.last.request.url.params["recursive"] == "1"
        assert [e.path for e in entries] == ["src", "src/app.py"]
        assert entries[1].kind is EntryKind.BLOB
        assert entries[1].size == 120

    @pytest.mark.asyncio
    async def test_file_content(self, client):
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo/contents/src/app.py").mock(
                return_value=httpx.Response(
                    200, json={"encoding": "base64", "content": encoded("print('hi')\n")}
                )
            )
            content = await client.get_file_content("octo", "demo", "src/app.py", ref="dev")
        assert content == "print('hi')\n"
        assert route.calls.last.request.url.params["ref"] == "dev"

    @pytest.mark.asyncio
    async def test_directory_content_is_not_a_file(self, client):
        with respx.mock:
            respx.get(f"{API}/repos/octo/demo/contents/src").mock(
                return_value=httpx.Response(200, json=[{"name": "app.py"}])
            )
            with pytest.raises(NotFoundError):
                await client.get_file_content("octo", "demo", "src")

    @pytest.mark.asyncio
    async def test_branches_stop_at_empty_page(self, client):
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo/branches").mock(
                side_effect=[
                    httpx.Response(200, json=[{"name": "main"}, {"name": "dev"}]),
                    httpx.Response(200, json=[]),
                ]
            )
            branches = await client.get_branches("octo", "demo")

        assert [b["name"] for b in branches] == ["main", "dev"]
        assert route.call_count == 2
        assert route.calls[1].request.url.params["page"] == "2"

    @pytest.mark.asyncio
    async def test_branches_stop_at_page_cap(self, gate):
        client = ForgeClient(gate=gate, base_url=API, max_branch_pages=3, branches_per_page=1)
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo/branches").mock(
                return_value=httpx.Response(200, json=[{"name": "b"}])
            )
            branches = await client.get_branches("octo", "demo")

        assert route.call_count == 3
        assert len(branches) == 3

    @pytest.mark.asyncio
    async def test_commits_pass_branch_as_sha(self, client):
        with respx.mock:
            route = respx.get(f"{API}/repos/octo/demo/commits").mock(
                return_value=httpx.Response(200, json=[])
            )
            await client.get_commits("octo", "demo", "dev", per_page=5)
        params = route.calls.last.request.url.params
        assert params["sha"] == "dev"
        assert params["per_page"] == "5"

    @pytest.mark.asyncio
    async def test_contributors_failure_is_empty(self, client):
        with respx.mock:
            respx.get(f"{API}/repos/octo/demo/contributors").mock(
                return_value=httpx.Response(500)
            )
            assert await client.get_contributors("octo", "demo") == []

    @pytest.mark.asyncio
    async def test_compare(self, client):
        with respx.mock:
            respx.get(f"{API}/repos/octo/demo/compare/main...dev").mock(
                return_value=httpx.Response(200, json={"status": "ahead", "files": []})
            )
            data = await client.compare_branches("octo", "demo", "main", "dev")
        assert data["status"] == "ahead"

    @pytest.mark.asyncio
    async def test_compare_escapes_branch_names(self, client):
        with respx.mock:
            route = respx.get(url__startswith=f"{API}/repos/octo/demo/compare/").mock(
                return_value=httpx.Response(200, json={"status": "ahead", "files": []})
            )
            await client.compare_branches("octo", "demo", "release/1.0", "fix#12")

        url = route.calls.last.request.url
        assert url.raw_path == b"/repos/octo/demo/compare/release/1.0...fix%2312"
        assert url.fragment == ""

"""GitHub REST API client.

Every accessor funnels through ``ForgeClient.execute``: build the URL and
headers, ask the shared RequestGate for admission, perform the call,
classify the result with the RetryPolicy, and either return the decoded
payload, perform the single rate-limit retry, or raise a typed ForgeError.
"""

import asyncio
import base64
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

from narrator.app.core.config import Settings
from narrator.app.core.logging import get_log_context, get_logger
from narrator.app.exceptions import ForgeError, NotFoundError
from narrator.app.forge.gate import RequestGate
from narrator.app.forge.models import PathEntry, Readme
from narrator.app.forge.retry import Outcome, RetryPolicy, Success

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"
ACCEPT_HEADER = "application/vnd.github+json"
API_VERSION = "2022-11-28"
USER_AGENT = "gitnarrator"


class ForgeClient:
    """Client for the forge's repository, tree, commit and branch resources.

    If http_client is provided, it will be used for all requests (connection
    reuse). If not, a new client is created per request.

    No caching layer and no state beyond the shared gate's bookkeeping.
    """

    def __init__(
        self,
        gate: RequestGate,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        branches_per_page: int = 100,
        max_branch_pages: int = 10,
        commits_per_page: int = 100,
        contributors_per_page: int = 10,
        timeout: float = 30.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        wall_clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize the client.

        Args:
            gate: Shared admission controller; every attempt is admitted through it
            http_client: Optional shared HTTP client for connection pooling
            base_url: Forge API base URL
            token: Optional bearer token, attached verbatim when present
            retry_policy: Outcome classification and retry rules
            branches_per_page: Page size for branch listing
            max_branch_pages: Hard upper bound on branch pages fetched
            commits_per_page: Default page size for commit listing
            contributors_per_page: Page size for contributor listing
            timeout: Timeout for per-request clients
            sleep: Awaitable sleep used for the rate-limit wait
            wall_clock: Epoch-seconds clock compared with the reset header
        """
        self.gate = gate
        self._http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.token = token or None
        self.retry_policy = retry_policy or RetryPolicy()
        self.branches_per_page = branches_per_page
        self.max_branch_pages = max_branch_pages
        self.commits_per_page = commits_per_page
        self.contributors_per_page = contributors_per_page
        self.timeout = timeout
        self._sleep = sleep or asyncio.sleep
        self._wall_clock = wall_clock or time.time
        self.headers = self._build_headers()

    @classmethod
    def from_settings(
        cls,
        config: Settings,
        gate: RequestGate,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "ForgeClient":
        return cls(
            gate=gate,
            http_client=http_client,
            base_url=config.github_api_base_url,
            token=config.github_token or None,
            retry_policy=RetryPolicy(safety_margin=config.rate_limit_retry_margin_seconds),
            branches_per_page=config.branches_per_page,
            max_branch_pages=config.max_branch_pages,
            commits_per_page=config.commits_per_page,
            contributors_per_page=config.contributors_per_page,
            timeout=config.httpx_read_timeout,
        )

    def _build_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": ACCEPT_HEADER,
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_endpoint_url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    @asynccontextmanager
    async def _client_context(self) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Yield the shared client, or a per-request client that is closed afterwards."""
        if self._http_client is not None:
            yield self._http_client
            return
        client = httpx.AsyncClient(timeout=self.timeout)
        try:
            yield client
        finally:
            await client.aclose()

    async def execute(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Run one logical GET call against the forge.

        Args:
            endpoint: API path, e.g. ``/repos/octocat/hello-world``
            params: Query parameters
            headers: Extra headers merged over the standard ones

        Returns:
            The decoded JSON payload

        Raises:
            ForgeError: The subclass matching the final outcome
        """
        url = self._get_endpoint_url(endpoint)
        request_headers = {**self.headers, **(headers or {})}
        retries_done = 0

        while True:
            outcome = await self._attempt(url, endpoint, params, request_headers, retries_done + 1)
            if isinstance(outcome, Success):
                return outcome.payload

            if not self.retry_policy.should_retry(outcome, retries_done):
                raise self.retry_policy.to_error(outcome, endpoint)

            delay = self.retry_policy.retry_delay(outcome, self._wall_clock())
            logger.warning(
                f"Rate limit exceeded for {endpoint}. Waiting {delay:.1f}s before retrying once...",
                extra=get_log_context(endpoint=endpoint, attempt=retries_done + 1),
            )
            await self._sleep(delay)
            retries_done += 1

    async def _attempt(
        self,
        url: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]],
        headers: Dict[str, str],
        attempt: int,
    ) -> Outcome:
        await self.gate.admit()

        started = time.perf_counter()
        try:
            async with self._client_context() as client:
                response = await client.get(url, params=params, headers=headers)
        except httpx.TransportError as e:
            outcome = self.retry_policy.classify_exception(e)
            logger.warning(
                f"Transport failure for {endpoint}: {type(e).__name__}: {e}",
                extra=get_log_context(endpoint=endpoint, attempt=attempt),
            )
            return outcome

        duration_ms = round((time.perf_counter() - started) * 1000, 1)
        logger.debug(
            f"GET {endpoint} -> {response.status_code}",
            extra=get_log_context(
                endpoint=endpoint,
                status_code=response.status_code,
                duration_ms=duration_ms,
                attempt=attempt,
            ),
        )
        return self.retry_policy.classify_response(response)

    # -- Resource accessors -------------------------------------------------

    async def get_repo_details(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self.execute(f"/repos/{owner}/{repo}")

    async def get_readme(self, owner: str, repo: str) -> Optional[Readme]:
        """Fetch and decode the README; None when the repository has none."""
        try:
            data = await self.execute(f"/repos/{owner}/{repo}/readme")
        except NotFoundError:
            logger.info(
                f"No README for {owner}/{repo}",
                extra=get_log_context(owner=owner, repo=repo),
            )
            return None

        return Readme(
            name=data.get("name", "README"),
            path=data.get("path", data.get("name", "README")),
            content=_decode_content(data),
        )

    async def get_languages(self, owner: str, repo: str) -> Dict[str, int]:
        """Language name to byte count."""
        return await self.execute(f"/repos/{owner}/{repo}/languages")

    async def get_tree(self, owner: str, repo: str, branch: str) -> List[PathEntry]:
        """Recursive tree listing of a branch as PathEntry values, in listing order."""
        data = await self.execute(
            f"/repos/{owner}/{repo}/git/trees/{quote(branch, safe='/')}",
            params={"recursive": 1},
        )
        if data.get("truncated"):
            logger.warning(
                f"Tree listing for {owner}/{repo}@{branch} was truncated by the forge",
                extra=get_log_context(owner=owner, repo=repo),
            )
        entries = (PathEntry.from_api(item) for item in data.get("tree", []))
        return [entry for entry in entries if entry is not None]

    async def get_file_content(
        self, owner: str, repo: str, path: str, ref: Optional[str] = None
    ) -> str:
        """Raw text content of a file, with the transport encoding removed."""
        params = {"ref": ref} if ref else None
        data = await self.execute(
            f"/repos/{owner}/{repo}/contents/{quote(path.strip('/'), safe='/')}",
            params=params,
        )
        if not isinstance(data, dict):
            raise NotFoundError(
                endpoint=f"/repos/{owner}/{repo}/contents/{path}",
                detail=f"{path} is a directory, not a file",
            )
        return _decode_content(data)

    async def get_branches(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """All branches, page by page, stopping at an empty page or the page cap."""
        branches: List[Dict[str, Any]] = []
        for page in range(1, self.max_branch_pages + 1):
            data = await self.execute(
                f"/repos/{owner}/{repo}/branches",
                params={"page": page, "per_page": self.branches_per_page},
            )
            if not data:
                break
            branches.extend(data)
        else:
            logger.warning(
                f"Stopped branch listing for {owner}/{repo} after {self.max_branch_pages} pages",
                extra=get_log_context(owner=owner, repo=repo),
            )
        return branches

    async def get_commits(
        self,
        owner: str,
        repo: str,
        branch: Optional[str] = None,
        per_page: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"per_page": per_page or self.commits_per_page}
        if branch:
            params["sha"] = branch
        return await self.execute(f"/repos/{owner}/{repo}/commits", params=params)

    async def get_contributors(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """Top contributors; best effort, so any forge failure yields an empty list."""
        try:
            data = await self.execute(
                f"/repos/{owner}/{repo}/contributors",
                params={"per_page": self.contributors_per_page},
            )
        except ForgeError as e:
            logger.warning(
                f"Failed to fetch contributors: {e}",
                extra=get_log_context(owner=owner, repo=repo),
            )
            return []
        # 204 No Content for empty repositories
        return data or []

    async def compare_branches(
        self, owner: str, repo: str, base: str, head: str
    ) -> Dict[str, Any]:
        base_ref = quote(base, safe="/")
        head_ref = quote(head, safe="/")
        return await self.execute(f"/repos/{owner}/{repo}/compare/{base_ref}...{head_ref}")


def _decode_content(data: Mapping[str, Any]) -> str:
    content = data.get("content") or ""
    if data.get("encoding") == "base64":
        return base64.b64decode(content).decode("utf-8", errors="replace")
    return content

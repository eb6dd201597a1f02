"""Repository API endpoints.

The forge client, diagram generator and optional text generator are built
once in the application lifespan and stored on ``app.state``; the
dependencies below hand them to the endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from narrator.app.core.logging import get_log_context, get_logger
from narrator.app.core.utils import parse_repo_url
from narrator.app.forge.client import ForgeClient
from narrator.app.providers.base import TextGenerator
from narrator.app.services import summaries
from narrator.app.services.analyzer import RepositoryAnalyzer, branch_info, repository_info
from narrator.app.services.branch_comparator import BranchComparator
from narrator.app.services.diagram import DiagramGenerator, DiagramMode
from narrator.app.services.models import (
    AnalysisRecord,
    BranchComparison,
    BranchInfo,
    FileChange,
    RepositoryInfo,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/repos/{owner}/{repo}", tags=["repositories"])
resolve_router = APIRouter(prefix="/api", tags=["repositories"])


# -- Dependencies -----------------------------------------------------------

def get_forge_client(request: Request) -> ForgeClient:
    return request.app.state.forge_client


def get_text_generator(request: Request) -> Optional[TextGenerator]:
    return request.app.state.text_generator


def get_diagram_generator(request: Request) -> DiagramGenerator:
    return request.app.state.diagram_generator


def get_analyzer(client: ForgeClient = Depends(get_forge_client)) -> RepositoryAnalyzer:
    return RepositoryAnalyzer(client)


# -- Response models --------------------------------------------------------

class AnalysisResponse(BaseModel):
    analysis: AnalysisRecord
    architecture_summary: Optional[str] = None
    project_overview: Optional[str] = None


class DiagramResponse(BaseModel):
    mode: DiagramMode
    definition: str
    fallback_reason: Optional[str] = None


class CompareResponse(BaseModel):
    base: str
    head: str
    comparison: BranchComparison
    significant_changes: List[FileChange] = Field(default_factory=list)


class FileContentResponse(BaseModel):
    path: str
    ref: Optional[str] = None
    content: str


class ExplainResponse(BaseModel):
    path: str
    mode: str
    explanation: Optional[str] = None
    available: bool = False


class ResolveRequest(BaseModel):
    url: str = Field(..., min_length=1)


class ResolveResponse(BaseModel):
    owner: str
    repo: str
    branch: Optional[str] = None
    full_name: str


# -- Endpoints --------------------------------------------------------------

@router.get("", response_model=RepositoryInfo)
async def get_repository(
    owner: str,
    repo: str,
    client: ForgeClient = Depends(get_forge_client),
) -> RepositoryInfo:
    details = await client.get_repo_details(owner, repo)
    return repository_info(owner, repo, details)


@router.get("/analysis", response_model=AnalysisResponse)
async def analyze_repository(
    owner: str,
    repo: str,
    branch: Optional[str] = None,
    summarize: bool = True,
    analyzer: RepositoryAnalyzer = Depends(get_analyzer),
    generator: Optional[TextGenerator] = Depends(get_text_generator),
) -> AnalysisResponse:
    """Full analysis of a branch, with generated summaries when available."""
    context = get_log_context(owner=owner, repo=repo, endpoint="analysis")

    def log_progress(step: int, message: str) -> None:
        logger.debug(f"[{step}/10] {message}", extra=context)

    record = await analyzer.analyze(owner, repo, branch, progress=log_progress)
    response = AnalysisResponse(analysis=record)
    if summarize and generator is not None:
        response.architecture_summary = await summaries.architecture_summary(generator, record)
        response.project_overview = await summaries.project_overview(generator, record)
    return response


@router.get("/diagram", response_model=DiagramResponse)
async def get_diagram(
    owner: str,
    repo: str,
    branch: Optional[str] = None,
    mode: DiagramMode = DiagramMode.BASIC,
    client: ForgeClient = Depends(get_forge_client),
    diagrams: DiagramGenerator = Depends(get_diagram_generator),
) -> DiagramResponse:
    details = await client.get_repo_details(owner, repo)
    info = repository_info(owner, repo, details)
    entries = await client.get_tree(owner, repo, branch or info.default_branch)

    languages: List[str] = []
    if mode is DiagramMode.ADVANCED:
        languages = list((await client.get_languages(owner, repo)).keys())

    result = await diagrams.generate(
        entries,
        mode=mode,
        title=info.full_name,
        description=info.description,
        languages=languages,
    )
    return DiagramResponse(
        mode=result.mode,
        definition=result.definition,
        fallback_reason=result.fallback_reason,
    )


@router.get("/branches", response_model=List[BranchInfo])
async def list_branches(
    owner: str,
    repo: str,
    client: ForgeClient = Depends(get_forge_client),
) -> List[BranchInfo]:
    return [branch_info(b) for b in await client.get_branches(owner, repo)]


@router.get("/compare", response_model=CompareResponse)
async def compare_branches(
    owner: str,
    repo: str,
    base: str = Query(..., min_length=1),
    head: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=100),
    client: ForgeClient = Depends(get_forge_client),
) -> CompareResponse:
    payload = await client.compare_branches(owner, repo, base, head)
    comparison = BranchComparator.analyze(payload)
    return CompareResponse(
        base=base,
        head=head,
        comparison=comparison,
        significant_changes=BranchComparator.significant_changes(comparison, limit=limit),
    )


@router.get("/contents/{path:path}", response_model=FileContentResponse)
async def get_file_content(
    owner: str,
    repo: str,
    path: str,
    ref: Optional[str] = None,
    client: ForgeClient = Depends(get_forge_client),
) -> FileContentResponse:
    content = await client.get_file_content(owner, repo, path, ref=ref)
    return FileContentResponse(path=path, ref=ref, content=content)


@router.get("/files/{path:path}/explain", response_model=ExplainResponse)
async def explain_file(
    owner: str,
    repo: str,
    path: str,
    mode: str = Query(summaries.BEGINNER, pattern="^(beginner|advanced)$"),
    ref: Optional[str] = None,
    client: ForgeClient = Depends(get_forge_client),
    generator: Optional[TextGenerator] = Depends(get_text_generator),
) -> ExplainResponse:
    if generator is None:
        return ExplainResponse(path=path, mode=mode)

    content = await client.get_file_content(owner, repo, path, ref=ref)
    explanation = await summaries.explain_code(generator, path, content, mode)
    return ExplainResponse(
        path=path,
        mode=mode,
        explanation=explanation,
        available=explanation is not None,
    )


@resolve_router.post("/resolve", response_model=ResolveResponse)
async def resolve_repository(body: ResolveRequest) -> ResolveResponse:
    """Parse a repository page URL into owner, repository and branch."""
    try:
        ref = parse_repo_url(body.url)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return ResolveResponse(owner=ref.owner, repo=ref.repo, branch=ref.branch, full_name=ref.full_name)

"""Prose summaries produced by the optional text generator.

Every function returns None when no generator is configured or the
generator reports itself unavailable; callers treat that as "no summary".
"""

from typing import Optional

from narrator.app.providers.base import TextGenerator
from narrator.app.services.models import AnalysisRecord

MAX_CONTENT_CHARS = 2000

BEGINNER = "beginner"
ADVANCED = "advanced"
EXPLAIN_MODES = (BEGINNER, ADVANCED)

_EXPLAIN_SYSTEM = {
    BEGINNER: "You are a helpful coding instructor explaining code to beginners.",
    ADVANCED: "You are a senior software architect analyzing code.",
}


def _extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    return name.rsplit(".", 1)[-1].lower() if "." in name else "source"


async def explain_code(
    generator: Optional[TextGenerator], path: str, content: str, mode: str = BEGINNER
) -> Optional[str]:
    if generator is None:
        return None
    if mode not in EXPLAIN_MODES:
        raise ValueError(f"Unknown explanation mode: {mode}")

    ext = _extension(path)
    preview = content[:MAX_CONTENT_CHARS]
    if mode == BEGINNER:
        instruction = (
            f"Explain this {ext} file for a beginner student in 2-3 sentences. "
            "Focus on what it does, not how it works."
        )
    else:
        instruction = (
            f"Provide an advanced technical summary of this {ext} file. "
            "Highlight patterns, architecture, and key logic. Be concise."
        )
    prompt = f"{instruction}\n\nFile: {path}\n\nCode:\n{preview}"
    return await generator.generate(prompt, system_prompt=_EXPLAIN_SYSTEM[mode])


async def architecture_summary(
    generator: Optional[TextGenerator], record: AnalysisRecord
) -> Optional[str]:
    if generator is None:
        return None
    prompt = (
        "Based on this repository analysis, provide a 2-3 sentence architecture summary:\n\n"
        f"Languages: {', '.join(record.technologies.languages)}\n"
        f"Modules: {', '.join(m.name for m in record.structure.modules)}\n"
        f"Total Files: {record.structure.total_files}\n"
        f"Description: {record.repository.description or 'N/A'}"
    )
    return await generator.generate(
        prompt,
        system_prompt="You are an expert software architect. Provide concise architecture insights.",
    )


async def project_overview(
    generator: Optional[TextGenerator], record: AnalysisRecord
) -> Optional[str]:
    if generator is None:
        return None
    prompt = (
        "Generate a professional project overview (2-3 sentences) for:\n\n"
        f"Repository: {record.repository.full_name}\n"
        f"Description: {record.repository.description or 'N/A'}\n"
        f"Technologies: {', '.join(record.technologies.languages)}\n"
        f"Stars: {record.repository.stars}"
    )
    return await generator.generate(
        prompt, system_prompt="You are a technical writer creating project documentation."
    )

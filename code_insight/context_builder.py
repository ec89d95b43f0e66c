"""Prompt assembly for code-insight.

Every request shape (single file, project summary, contextual query) turns a
list of FileRecords into one prompt string. Each shape has a ContextBudget
that caps how many characters of each file are kept and which files are
dropped outright; sizes are counted in characters, not model tokens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from .exceptions import InputError
from .models import FileRecord


class ContextMode(str, Enum):
    SINGLE_FILE = "single_file"
    PROJECT_SUMMARY = "project_summary"
    CONTEXTUAL_QUERY = "contextual_query"


@dataclass(frozen=True)
class ContextBudget:
    """Per-mode size policy.

    Attributes:
        per_file_character_cap: Content beyond this many characters is cut off.
        hard_exclusion_byte_size: Files whose size is at or above this are
            dropped entirely rather than truncated. None disables the check.
        skip_image_types: Drop image-typed files entirely.
    """

    per_file_character_cap: int
    hard_exclusion_byte_size: Optional[int] = None
    skip_image_types: bool = False


SINGLE_FILE_BUDGET = ContextBudget(per_file_character_cap=90_000)
PROJECT_SUMMARY_BUDGET = ContextBudget(per_file_character_cap=20_000, skip_image_types=True)
CONTEXTUAL_QUERY_BUDGET = ContextBudget(
    per_file_character_cap=15_000,
    hard_exclusion_byte_size=500_000,
    skip_image_types=True,
)

BUDGETS = {
    ContextMode.SINGLE_FILE: SINGLE_FILE_BUDGET,
    ContextMode.PROJECT_SUMMARY: PROJECT_SUMMARY_BUDGET,
    ContextMode.CONTEXTUAL_QUERY: CONTEXTUAL_QUERY_BUDGET,
}

BREVITY_DIRECTIVE = (
    "Answer in one straightforward line, unless the user's wording asks for "
    "details; in that case explain in detail."
)

CONTENT_UNAVAILABLE = "Content not available"


@dataclass(frozen=True)
class AssembledContext:
    """A finished prompt plus the number of files whose content it carries."""

    mode: ContextMode
    prompt: str
    included_count: int
    excluded: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Fragment:
    record: FileRecord
    content: Optional[str]


def file_header(record: FileRecord) -> str:
    """Header line naming a file, with its relative path when that adds information."""
    if record.relative_path and record.relative_path != record.name:
        return f"--- File: {record.name} ({record.relative_path}) ---"
    return f"--- File: {record.name} ---"


def _apply_budget(
    files: Sequence[FileRecord],
    budget: ContextBudget,
) -> tuple[List[_Fragment], List[str], int]:
    """Select and truncate files according to ``budget``.

    Returns the fragments to render (in input order), the relative paths of
    excluded files, and the number of fragments that carry content.
    """
    fragments: List[_Fragment] = []
    excluded: List[str] = []
    included = 0

    for record in files:
        if budget.skip_image_types and record.is_image:
            excluded.append(record.relative_path)
            continue
        if budget.hard_exclusion_byte_size is not None and record.size_bytes >= budget.hard_exclusion_byte_size:
            excluded.append(record.relative_path)
            continue

        if record.content is not None:
            fragments.append(_Fragment(record, record.content[: budget.per_file_character_cap]))
            included += 1
        else:
            fragments.append(_Fragment(record, None))

    return fragments, excluded, included


def build_file_prompt(record: FileRecord, budget: ContextBudget = SINGLE_FILE_BUDGET) -> AssembledContext:
    """Prompt asking for a summary, key points and issues of a single file."""
    fragments, excluded, included = _apply_budget([record], budget)

    if fragments and fragments[0].content is not None:
        body = fragments[0].content
    else:
        body = f"[{CONTENT_UNAVAILABLE}]"

    prompt = (
        f'Analyze the following file named "{record.name}".\n'
        "Provide a comprehensive summary, list its key points, and identify any "
        "potential issues or improvements.\n"
        f"- {BREVITY_DIRECTIVE}\n\n"
        f"{file_header(record)}\n"
        "File content:\n"
        f"{body}\n"
    )
    return AssembledContext(ContextMode.SINGLE_FILE, prompt, included, excluded)


def build_project_prompt(
    files: Sequence[FileRecord],
    budget: ContextBudget = PROJECT_SUMMARY_BUDGET,
) -> AssembledContext:
    """Prompt asking for a high-level description of a whole project."""
    fragments, excluded, included = _apply_budget(files, budget)

    parts: List[str] = [
        "Analyze the following project files and provide a high-level summary of "
        "the project, its architecture, and its functionality.\n"
        f"{BREVITY_DIRECTIVE}\n\n"
    ]
    for fragment in fragments:
        parts.append(f"{file_header(fragment.record)}\n")
        if fragment.content is not None:
            parts.append(f"{fragment.content}\n\n")
        else:
            parts.append(f"{CONTENT_UNAVAILABLE}\n\n")

    return AssembledContext(ContextMode.PROJECT_SUMMARY, "".join(parts), included, excluded)


def build_query_prompt(
    files: Sequence[FileRecord],
    query: str,
    project_name: Optional[str] = None,
    budget: ContextBudget = CONTEXTUAL_QUERY_BUDGET,
) -> AssembledContext:
    """Prompt answering a free-form question with project files as context."""
    if query is None or not query.strip():
        raise InputError("Query is required")

    name = project_name or "project"
    fragments, excluded, included = _apply_budget(files, budget)

    parts: List[str] = [
        f'You are an expert AI coding assistant analyzing the project "{name}".\n\n'
        "IMPORTANT FORMATTING RULES:\n"
        "- Use proper markdown formatting in your responses\n"
        "- Wrap code snippets in triple backticks with a language identifier\n"
        "- Use **bold** for important terms and concepts\n"
        "- Use bullet points (-) for lists and numbered lists (1., 2., 3.) for sequential steps\n"
        "- Use headers (##, ###) to organize longer responses\n"
        "- Reference specific files and line numbers when relevant\n"
        "- Keep explanations clear and concise\n"
        f"- {BREVITY_DIRECTIVE}\n\n"
        f'USER QUESTION: "{query}"\n\n'
        "PROJECT FILES CONTEXT:\n"
    ]
    for fragment in fragments:
        parts.append(f"\n{file_header(fragment.record)}\n")
        if fragment.content is not None:
            parts.append(f"```\n{fragment.content}\n```\n")
        else:
            parts.append(f"[{CONTENT_UNAVAILABLE}]\n")

    parts.append(
        "\n\nINSTRUCTIONS:\n"
        f"Based on the {included} files provided above, answer the user's question with:\n"
        "1. Clear, well-formatted markdown\n"
        "2. Code examples in proper code blocks with syntax highlighting\n"
        "3. Specific references to files and code when relevant\n"
        "4. Organized structure with headers and lists\n"
        "5. Concise but comprehensive explanations\n\n"
        "Your response:"
    )

    return AssembledContext(ContextMode.CONTEXTUAL_QUERY, "".join(parts), included, excluded)


def assemble(
    mode: ContextMode | str,
    files: Sequence[FileRecord],
    query: Optional[str] = None,
    project_name: Optional[str] = None,
) -> AssembledContext:
    """Build the prompt for ``mode`` from ``files``.

    Raises:
        InputError: For an unknown mode, a single-file request that does not
            carry exactly one file, or a query request without a query.
    """
    try:
        mode = ContextMode(mode)
    except ValueError:
        raise InputError(f"Unknown context mode: {mode!r}") from None

    if mode is ContextMode.SINGLE_FILE:
        if len(files) != 1:
            raise InputError(f"Single-file analysis needs exactly one file, got {len(files)}")
        return build_file_prompt(files[0])
    if mode is ContextMode.PROJECT_SUMMARY:
        return build_project_prompt(files)
    return build_query_prompt(files, query or "", project_name)


__all__ = [
    "ContextMode",
    "ContextBudget",
    "AssembledContext",
    "SINGLE_FILE_BUDGET",
    "PROJECT_SUMMARY_BUDGET",
    "CONTEXTUAL_QUERY_BUDGET",
    "BUDGETS",
    "assemble",
    "build_file_prompt",
    "build_project_prompt",
    "build_query_prompt",
    "file_header",
]

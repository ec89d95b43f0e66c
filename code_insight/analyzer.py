"""Request pipeline: files in, model answer out.

Two trigger shapes feed the same context builder:

- directory-backed requests walk a live directory (``analyze_directory``,
  ``query_directory``);
- project-backed requests reuse already stored FileRecords and skip the walk
  (``analyze_project_files``, ``query_project_files``, ``analyze_file``).

Validation and empty-result checks always happen before the provider is
called; provider errors propagate unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .context_builder import (
    AssembledContext,
    ContextMode,
    assemble,
    build_file_prompt,
    build_project_prompt,
    build_query_prompt,
)
from .exceptions import EmptyResultError, InputError
from .filters import FilterPolicy
from .fs_tools import TraversalReport, load_file_record, resolve_root, walk_directory_async
from .llm_client import LLMClient
from .logging import logger
from .models import FileRecord

StoredFile = Union[FileRecord, Mapping[str, Any]]

_PAYLOAD_TEXT_KEY = {
    ContextMode.SINGLE_FILE: "analysis",
    ContextMode.PROJECT_SUMMARY: "summary",
    ContextMode.CONTEXTUAL_QUERY: "response",
}


@dataclass
class AnalysisResult:
    """Outcome of one request.

    Attributes:
        mode: Request shape that produced this result.
        text: Raw text returned by the model.
        model: Model spec actually used for the call.
        files_analyzed: Candidate files that had text content.
        files_included: Files whose content made it into the prompt.
        query: The user question, for contextual queries.
        directory_path: The directory as given by the caller, for directory-backed requests.
        report: Traversal report, for directory-backed requests.
    """

    mode: ContextMode
    text: str
    model: str
    files_analyzed: int
    files_included: int
    query: Optional[str] = None
    directory_path: Optional[str] = None
    report: Optional[TraversalReport] = None

    def to_payload(self) -> Dict[str, Any]:
        """Response body keyed the way HTTP clients of this service read it."""
        payload: Dict[str, Any] = {}
        if self.directory_path is not None:
            payload["directoryPath"] = self.directory_path
        if self.query is not None:
            payload["query"] = self.query
        payload["filesAnalyzed"] = self.files_analyzed
        payload[_PAYLOAD_TEXT_KEY[self.mode]] = self.text
        payload["model"] = self.model
        return payload


def _require_query(query: Optional[str], message: str = "Query is required") -> str:
    if query is None or not query.strip():
        raise InputError(message)
    return query


def _require_candidates(files: List[FileRecord]) -> None:
    if not files:
        raise EmptyResultError("No analyzable files found")
    if not any(f.has_content for f in files):
        raise EmptyResultError("No analyzable text files found")


def _coerce_record(item: StoredFile) -> FileRecord:
    if isinstance(item, FileRecord):
        return item
    if not isinstance(item, Mapping):
        raise InputError(f"Unsupported stored file row: {type(item).__name__}")
    return FileRecord.from_stored(item)


def _coerce_records(files: Optional[Iterable[StoredFile]]) -> List[FileRecord]:
    return [_coerce_record(item) for item in files or []]


async def build_directory_context(
    directory_path: Optional[str],
    mode: Union[ContextMode, str] = ContextMode.PROJECT_SUMMARY,
    query: Optional[str] = None,
    policy: Optional[FilterPolicy] = None,
) -> Tuple[TraversalReport, AssembledContext]:
    """Walk a directory and assemble its prompt without calling the model.

    Raises:
        InputError: Missing path or query, or a single-file mode.
        RootNotFoundError / RootNotDirectoryError: Invalid root.
        EmptyResultError: Nothing analyzable under the root.
    """
    try:
        mode = ContextMode(mode)
    except ValueError:
        raise InputError(f"Unknown context mode: {mode!r}") from None
    if mode is ContextMode.SINGLE_FILE:
        raise InputError("Single-file analysis takes a file path, not a directory")
    if mode is ContextMode.CONTEXTUAL_QUERY:
        _require_query(query, "Directory path and query are required")

    root = resolve_root(directory_path)
    report = await walk_directory_async(root, policy)
    _require_candidates(report.files)

    context = assemble(mode, report.files, query=query, project_name=root.name or None)
    if context.included_count == 0:
        logger.warning("analyze.no_content_in_prompt", path=str(root), mode=mode.value)
    return report, context


async def _run_directory_request(
    client: LLMClient,
    directory_path: Optional[str],
    mode: ContextMode,
    query: Optional[str],
    model: Optional[str],
    policy: Optional[FilterPolicy],
) -> AnalysisResult:
    logger.info("analyze.directory.start", path=directory_path, mode=mode.value)
    report, context = await build_directory_context(directory_path, mode, query=query, policy=policy)

    generation = await client.generate(context.prompt, model=model)

    result = AnalysisResult(
        mode=mode,
        text=generation.text,
        model=generation.model,
        files_analyzed=report.analyzable_count,
        files_included=context.included_count,
        query=query,
        directory_path=directory_path,
        report=report,
    )
    logger.info(
        "analyze.directory.done",
        path=directory_path,
        mode=mode.value,
        files_analyzed=result.files_analyzed,
        files_included=result.files_included,
        traversal_errors=len(report.errors),
    )
    return result


async def analyze_directory(
    client: LLMClient,
    directory_path: Optional[str],
    model: Optional[str] = None,
    policy: Optional[FilterPolicy] = None,
) -> AnalysisResult:
    """Summarize the project rooted at ``directory_path``."""
    return await _run_directory_request(client, directory_path, ContextMode.PROJECT_SUMMARY, None, model, policy)


async def query_directory(
    client: LLMClient,
    directory_path: Optional[str],
    query: Optional[str],
    model: Optional[str] = None,
    policy: Optional[FilterPolicy] = None,
) -> AnalysisResult:
    """Answer ``query`` using the files under ``directory_path`` as context."""
    return await _run_directory_request(client, directory_path, ContextMode.CONTEXTUAL_QUERY, query, model, policy)


async def analyze_project_files(
    client: LLMClient,
    files: Optional[Iterable[StoredFile]],
    model: Optional[str] = None,
) -> AnalysisResult:
    """Summarize a project from its stored file records."""
    records = _coerce_records(files)
    _require_candidates(records)

    context = build_project_prompt(records)
    generation = await client.generate(context.prompt, model=model)
    return AnalysisResult(
        mode=ContextMode.PROJECT_SUMMARY,
        text=generation.text,
        model=generation.model,
        files_analyzed=sum(1 for r in records if r.has_content),
        files_included=context.included_count,
    )


async def query_project_files(
    client: LLMClient,
    files: Optional[Iterable[StoredFile]],
    query: Optional[str],
    project_name: Optional[str] = None,
    model: Optional[str] = None,
) -> AnalysisResult:
    """Answer ``query`` using a project's stored file records as context."""
    _require_query(query)
    records = _coerce_records(files)
    _require_candidates(records)

    context = build_query_prompt(records, query, project_name)
    generation = await client.generate(context.prompt, model=model)
    return AnalysisResult(
        mode=ContextMode.CONTEXTUAL_QUERY,
        text=generation.text,
        model=generation.model,
        files_analyzed=sum(1 for r in records if r.has_content),
        files_included=context.included_count,
        query=query,
    )


async def analyze_file(
    client: LLMClient,
    file: Optional[StoredFile],
    model: Optional[str] = None,
) -> AnalysisResult:
    """Summarize a single file, listing key points and potential issues."""
    if file is None:
        raise InputError("File is required")
    record = _coerce_record(file)
    if not record.has_content:
        raise EmptyResultError("File content is not available or not text")

    context = build_file_prompt(record)
    generation = await client.generate(context.prompt, model=model)
    return AnalysisResult(
        mode=ContextMode.SINGLE_FILE,
        text=generation.text,
        model=generation.model,
        files_analyzed=1,
        files_included=context.included_count,
    )


async def analyze_file_path(
    client: LLMClient,
    file_path: Optional[str],
    model: Optional[str] = None,
) -> AnalysisResult:
    """Load a file from disk and analyze it with analyze_file()."""
    record = load_file_record(file_path)
    logger.info("analyze.file.start", path=str(Path(str(file_path)).expanduser()), size=record.size_bytes)
    return await analyze_file(client, record, model=model)


__all__ = [
    "AnalysisResult",
    "build_directory_context",
    "analyze_directory",
    "query_directory",
    "analyze_project_files",
    "query_project_files",
    "analyze_file",
    "analyze_file_path",
]

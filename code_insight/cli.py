"""Terminal CLI for code-insight."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from . import analyzer
from .context_builder import ContextMode
from .exceptions import CodeInsightError
from .llm_client import LLMClient

_SCAN_MODES = {
    "summary": ContextMode.PROJECT_SUMMARY,
    "query": ContextMode.CONTEXTUAL_QUERY,
}


def render_result(result: analyzer.AnalysisResult, as_json: bool = False) -> str:
    """Render an AnalysisResult for the terminal."""
    if as_json:
        return json.dumps(result.to_payload(), indent=2, ensure_ascii=False)

    lines: List[str] = [
        f"Model: {result.model}",
        f"Files analyzed: {result.files_analyzed} (in prompt: {result.files_included})",
    ]
    if result.report is not None and result.report.errors:
        lines.append(f"Unreadable entries skipped: {len(result.report.errors)}")
    lines.append("")
    lines.append(result.text.strip())
    return "\n".join(lines)


async def scan_directory(path: str, mode: str = "summary", query: Optional[str] = None) -> str:
    """Walk a directory and return the report summary plus the prompt that would be sent."""
    report, context = await analyzer.build_directory_context(path, _SCAN_MODES[mode], query=query)

    lines: List[str] = [
        f"[ROOT] {report.root}",
        f"[FILES] {len(report.files)} candidates, {report.analyzable_count} with text content",
        f"[SKIPPED] {len(report.skipped_filtered)} filtered, {len(report.skipped_binary)} binary/unreadable",
    ]
    for issue in report.errors:
        lines.append(f"[ERROR] {issue.path or '.'}: {issue.message}")
    if context.excluded:
        lines.append(f"[EXCLUDED] {', '.join(context.excluded)}")
    lines.append(f"[PROMPT] {len(context.prompt)} characters, {context.included_count} files with content")
    lines.append("")
    lines.append(context.prompt)
    return "\n".join(lines)


async def _run_command(args: argparse.Namespace) -> str:
    if args.command == "scan":
        return await scan_directory(args.path, mode=args.mode, query=args.query)

    async with LLMClient.from_config() as client:
        if args.command == "summarize":
            result = await analyzer.analyze_directory(client, args.path, model=args.model)
        elif args.command == "ask":
            result = await analyzer.query_directory(client, args.path, args.question, model=args.model)
        else:
            result = await analyzer.analyze_file_path(client, args.path, model=args.model)

    return render_result(result, as_json=args.json)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="code-insight",
        description="Summarize, question or review a codebase with a generative model",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_model_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--model",
            help="Model spec overriding the default for this call (e.g. gemini:gemini-2.5-pro)",
        )
        sub.add_argument(
            "--json",
            action="store_true",
            help="Print the response payload as JSON",
        )

    summarize_parser = subparsers.add_parser("summarize", help="Summarize a project directory")
    summarize_parser.add_argument("path", help="Project root directory")
    add_model_options(summarize_parser)

    ask_parser = subparsers.add_parser("ask", help="Ask a question about a project directory")
    ask_parser.add_argument("path", help="Project root directory")
    ask_parser.add_argument("question", help="Question to answer from the project files")
    add_model_options(ask_parser)

    file_parser = subparsers.add_parser("analyze-file", help="Analyze a single file")
    file_parser.add_argument("path", help="File to analyze")
    add_model_options(file_parser)

    scan_parser = subparsers.add_parser("scan", help="Print the context that would be sent, without calling a model")
    scan_parser.add_argument("path", help="Project root directory")
    scan_parser.add_argument("--mode", choices=sorted(_SCAN_MODES), default="summary")
    scan_parser.add_argument("--query", help="Question used to frame the prompt in query mode")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        output = asyncio.run(_run_command(args))
    except CodeInsightError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())

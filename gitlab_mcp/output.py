"""Local persistence of code review reports."""

from __future__ import annotations

import asyncio
from pathlib import Path

from gitlab_mcp.errors import LocalIOError


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


async def write_report(output_file: str, content: str) -> Path:
    """Write report text to ``output_file``, creating missing parent directories."""
    path = Path(output_file)
    try:
        await asyncio.to_thread(_write_text, path, content)
    except OSError as error:
        raise LocalIOError(
            f"Failed to write report to '{output_file}': {error}",
            path=output_file,
        ) from error
    return path

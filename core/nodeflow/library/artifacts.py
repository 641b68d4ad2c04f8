"""Artifact persistence helpers."""

from __future__ import annotations

import sys
from pathlib import Path

from nodeflow.domain.models import Artifact


def write_markdown(output_dir: Path, file_name: str, content: str, *, name: str) -> Artifact:
    """Write ``content`` to ``output_dir/file_name`` and describe the file.

    The output directory is created on demand.

    Raises:
        ValueError: If ``file_name`` would place the file outside ``output_dir``.
        OSError: If the directory or the file cannot be written.
    """
    root = output_dir.resolve()
    path = (root / file_name).resolve()
    if path.parent != root:
        raise ValueError(f"File name escapes the output directory: {file_name}")

    root.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")

    sys.stderr.write(f"[ARTIFACT] Wrote {path} ({len(content)} chars)\n")
    sys.stderr.flush()

    return Artifact(path=str(path), type="markdown", name=name)

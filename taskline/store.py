"""Line-oriented access to Markdown documents under the library root."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path, PurePosixPath

from taskline.constants import ALLOWED_MARKDOWN_EXTENSIONS
from taskline.errors import McpError


def resolve_document_path(library_root: Path, raw_path: str) -> Path:
    """Validate a user-supplied relative path to a Markdown document."""
    if not isinstance(raw_path, str) or not raw_path.strip():
        raise McpError(
            "INVALID_TYPE",
            "Path must be a non-empty string.",
            {"path": str(raw_path), "type": type(raw_path).__name__},
        )

    candidate = PurePosixPath(raw_path.replace("\\", "/"))
    if candidate.is_absolute():
        raise McpError(
            "ABSOLUTE_PATH",
            "Absolute paths are not allowed.",
            {"path": raw_path},
        )
    if ".." in candidate.parts:
        raise McpError(
            "PATH_TRAVERSAL",
            "Path traversal is not allowed.",
            {"path": raw_path},
        )

    current = library_root
    for segment in candidate.parts:
        current = current / segment
        if current.is_symlink():
            raise McpError(
                "PATH_SYMLINK",
                "Symlinked paths are not allowed.",
                {"path": raw_path},
            )

    if current.suffix.lower() not in ALLOWED_MARKDOWN_EXTENSIONS:
        raise McpError(
            "NOT_MARKDOWN",
            "Only markdown files are allowed.",
            {"path": raw_path},
        )
    return current


def read_text(path: Path, display_path: str | None = None) -> str:
    display_path = display_path or path.name
    if not path.is_file():
        raise McpError(
            "FILE_NOT_FOUND",
            "Markdown file does not exist.",
            {"path": display_path},
        )
    try:
        # newline="" keeps CRLF endings intact for the rewrite path.
        with path.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()
    except UnicodeDecodeError as exc:
        raise McpError(
            "INVALID_ENCODING",
            "Markdown file must be UTF-8 encoded.",
            {"path": display_path},
        ) from exc


def read_lines(path: Path, display_path: str | None = None) -> list[str]:
    """Return the document split on ``\\n``; ``write_lines`` restores it exactly."""
    return read_text(path, display_path).split("\n")


def write_lines(path: Path, lines: list[str]) -> None:
    _atomic_write(path, "\n".join(lines))


def _atomic_write(target_path: Path, content: str) -> None:
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=target_path.parent, delete=False, newline=""
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, target_path)
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass


def collect_markdown_files(library_root: Path, start_path: Path | None = None) -> list[str]:
    """List Markdown documents (relative POSIX paths), skipping symlinks and dot dirs."""
    files: list[str] = []
    for root, dirnames, filenames in os.walk(start_path or library_root, followlinks=False):
        dir_path = Path(root)
        dirnames[:] = sorted(
            name
            for name in dirnames
            if not name.startswith(".") and not (dir_path / name).is_symlink()
        )
        for filename in sorted(filenames):
            file_path = dir_path / filename
            if file_path.is_symlink():
                continue
            if file_path.suffix.lower() not in ALLOWED_MARKDOWN_EXTENSIONS:
                continue
            files.append(file_path.relative_to(library_root).as_posix())
    return sorted(files)

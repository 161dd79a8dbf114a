"""Git bookkeeping for task line rewrites."""

from __future__ import annotations

from pathlib import Path

from dulwich import porcelain
from dulwich.repo import Repo

from taskline.errors import GIT_ERROR, McpError
from taskline.store import _atomic_write


def _ensure_git_repo(library_root: Path) -> Repo:
    try:
        if (library_root / ".git").exists():
            return Repo(str(library_root))
        return porcelain.init(str(library_root))
    except Exception as exc:
        raise McpError(
            GIT_ERROR,
            "Git repository could not be initialized.",
            {"path": str(library_root)},
        ) from exc


def _resolve_git_head(library_root: Path) -> str | None:
    if not (library_root / ".git").exists():
        return None
    repo = Repo(str(library_root))
    try:
        return repo.head().decode("ascii")
    except KeyError:
        return None
    finally:
        repo.close()


def _commit_document_change(repo: Repo, relative_path: Path, operation: str) -> str:
    repo.get_worktree().stage([relative_path.as_posix()])
    commit_sha = porcelain.commit(
        repo, message=f"{operation}: {relative_path.as_posix()}"
    )
    if isinstance(commit_sha, bytes):
        return commit_sha.decode("ascii")
    return str(commit_sha)


def _restore_git_head(repo: Repo, previous_head: str | None) -> None:
    """Point the current branch back at ``previous_head`` after a failed mutation."""
    try:
        if previous_head is None:
            ref_chain, _ = repo.refs.follow(b"HEAD")
            branch = ref_chain[-1]
            if branch in repo.refs:
                del repo.refs[branch]
        else:
            repo.refs[b"HEAD"] = previous_head.encode("ascii")
    except (KeyError, OSError):
        return


def _rollback_document_change(
    repo: Repo | None,
    target_path: Path,
    relative_path: Path,
    original_content: str | None,
) -> None:
    """Put the document back; ``None`` means it did not exist before."""
    if original_content is None:
        target_path.unlink(missing_ok=True)
    else:
        _atomic_write(target_path, original_content)
    if repo is None:
        return
    try:
        repo.get_worktree().stage([relative_path.as_posix()])
    except Exception:
        # The document itself is restored; a stale index entry is harmless.
        return

"""Path and ref name helpers for repository sessions."""

from typing import Final

from sealedsecret.exceptions import InvalidPathError

_HEADS_PREFIX: Final = "refs/heads/"
_REMOTES_PREFIX: Final = "refs/remotes/"


def normalize_path(path: str) -> str:
    """Normalize a caller-supplied repository-relative path.

    Drops "." components and duplicate slashes.

    Args:
        path: Path relative to the repository root, using "/" separators.

    Returns:
        The normalized path.

    Raises:
        InvalidPathError: If the path is empty, absolute, or contains "..".
    """
    if path.startswith("/"):
        msg = f"Path must be relative to the repository root: {path}"
        raise InvalidPathError(msg, path=path)

    parts = [part for part in path.replace("\\", "/").split("/") if part not in ("", ".")]
    if not parts:
        msg = f"Path is empty: {path!r}"
        raise InvalidPathError(msg, path=path)
    if ".." in parts:
        msg = f"Path escapes the repository root: {path}"
        raise InvalidPathError(msg, path=path)
    if parts[0] == ".git":
        msg = f"Path points into git metadata: {path}"
        raise InvalidPathError(msg, path=path)
    return "/".join(parts)


def branch_ref(branch: str) -> bytes:
    """Return the local ref name for a branch."""
    return f"{_HEADS_PREFIX}{branch}".encode()


def tracking_ref(remote: str, branch: str) -> bytes:
    """Return the remote-tracking ref name for a branch."""
    return f"{_REMOTES_PREFIX}{remote}/{branch}".encode()


def strip_refs_heads(ref: bytes | str) -> str | None:
    """Strip the refs/heads/ prefix from a branch reference.

    Args:
        ref: Branch reference (bytes or str).

    Returns:
        Branch name without prefix, or None if the ref is not a branch.
    """
    ref_str = ref.decode() if isinstance(ref, bytes) else ref
    if ref_str.startswith(_HEADS_PREFIX):
        return ref_str[len(_HEADS_PREFIX) :]
    return None

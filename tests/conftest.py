"""Shared test fixtures for sealedsecret tests."""

import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

from sealedsecret.repository import RemoteEndpoint

SOURCE_BRANCH = "sealed-secrets"


def run_git(cwd: Path, *args: str) -> str:
    """Run a git command in the given directory and return its stdout."""
    result = subprocess.run(  # noqa: S603 - Safe: running git with controlled args
        ["git", *args],  # noqa: S607
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        msg = f"git {' '.join(args)} failed: {result.stderr}"
        raise RuntimeError(msg)
    return result.stdout


@dataclass(frozen=True, slots=True)
class GitRemote:
    """A bare repository on disk acting as the remote."""

    path: Path

    @property
    def url(self) -> str:
        return str(self.path)

    def endpoint(self, source_branch: str = SOURCE_BRANCH) -> RemoteEndpoint:
        return RemoteEndpoint(url=self.url, source_branch=source_branch)

    def show(self, branch: str, path: str) -> bytes:
        """Return a file's content on a remote branch, read with the git CLI."""
        result = subprocess.run(  # noqa: S603
            ["git", "--git-dir", str(self.path), "show", f"{branch}:{path}"],  # noqa: S607
            capture_output=True,
            check=True,
        )
        return result.stdout

    def branches(self) -> set[str]:
        out = run_git(self.path, "for-each-ref", "--format=%(refname:short)", "refs/heads")
        return set(out.split())

    def rev_parse(self, ref: str) -> str:
        return run_git(self.path, "rev-parse", ref).strip()

    def files(self, branch: str) -> set[str]:
        out = run_git(self.path, "ls-tree", "-r", "--name-only", branch)
        return set(out.splitlines())

    def log_subjects(self, branch: str) -> list[str]:
        out = run_git(self.path, "log", "--format=%s", branch)
        return out.splitlines()


def _init_bare(path: Path) -> None:
    path.mkdir(parents=True)
    _ = run_git(path, "init", "--bare")
    _ = run_git(path, "symbolic-ref", "HEAD", "refs/heads/main")


@pytest.fixture
def empty_remote(tmp_path: Path) -> GitRemote:
    """Create a bare repository without any commits."""
    remote = tmp_path / "remote.git"
    _init_bare(remote)
    return GitRemote(path=remote)


@pytest.fixture
def git_remote(tmp_path: Path) -> GitRemote:
    """Create a bare repository whose main branch holds one seed commit."""
    remote = tmp_path / "remote.git"
    _init_bare(remote)

    work = tmp_path / "seed"
    work.mkdir()
    _ = run_git(work, "init")
    _ = run_git(work, "config", "user.name", "Test User")
    _ = run_git(work, "config", "user.email", "test@example.com")
    # Disable GPG signing for the seed commit
    _ = run_git(work, "config", "commit.gpgsign", "false")
    _ = run_git(work, "symbolic-ref", "HEAD", "refs/heads/main")
    (work / "README.md").write_text("# Sealed secrets\n")
    _ = run_git(work, "add", "README.md")
    _ = run_git(work, "commit", "-m", "Initial commit")
    _ = run_git(work, "push", str(remote), "main:main")

    return GitRemote(path=remote)

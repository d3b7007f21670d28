"""Property-based tests for RepositorySession invariants.

This module uses Hypothesis to test key invariants of repository sessions:
- Path normalization: normalized paths are stable and never escape the root
- Last write wins: after any sequence of publishes and deletes, reads match
  a plain dict replaying the same operations
- Round trip: an independently opened session reads the same bytes
"""

import tempfile
from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from sealedsecret.exceptions import InvalidPathError, TrackedFileNotFoundError
from sealedsecret.repository import RemoteEndpoint, RepositorySession, normalize_path
from tests.conftest import SOURCE_BRANCH, run_git

# =============================================================================
# Strategies
# =============================================================================

_SAFE_FILENAME_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789-_"

safe_filename = st.text(alphabet=_SAFE_FILENAME_ALPHABET, min_size=1, max_size=12)

# Few distinct paths so that sequences overwrite and delete the same files
tracked_path = st.sampled_from(["a.yaml", "b.yaml", "prod/db.yaml", "prod/api.yaml"])

content = st.binary(min_size=0, max_size=64)

operation = st.one_of(
    st.tuples(st.just("publish"), tracked_path, content),
    st.tuples(st.just("delete"), tracked_path, st.just(b"")),
)

raw_path = st.lists(
    st.one_of(safe_filename, st.sampled_from([".", "", "..", ".git"])),
    min_size=0,
    max_size=5,
).map("/".join)


def _bare_remote(root: Path) -> str:
    remote = root / "remote.git"
    remote.mkdir()
    _ = run_git(remote, "init", "--bare")
    return str(remote)


# =============================================================================
# Path normalization
# =============================================================================


@given(path=raw_path)
def test_normalized_paths_are_stable_and_contained(path: str) -> None:
    try:
        normalized = normalize_path(path)
    except InvalidPathError:
        return

    assert normalize_path(normalized) == normalized
    parts = normalized.split("/")
    assert ".." not in parts
    assert "" not in parts
    assert "." not in parts
    assert parts[0] != ".git"


# =============================================================================
# Session state
# =============================================================================


@settings(
    max_examples=15,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
@given(operations=st.lists(operation, min_size=1, max_size=8))
def test_reads_match_last_write(operations: list[tuple[str, str, bytes]]) -> None:
    with tempfile.TemporaryDirectory() as tmp:
        url = _bare_remote(Path(tmp))
        endpoint = RemoteEndpoint(url=url, source_branch=SOURCE_BRANCH)
        expected: dict[str, bytes] = {}

        with RepositorySession.open(endpoint) as session:
            for action, path, data in operations:
                if action == "publish":
                    _ = session.publish(path, data)
                    expected[path] = data
                elif path in expected:
                    _ = session.delete(path)
                    del expected[path]
                else:
                    with pytest.raises(TrackedFileNotFoundError):
                        _ = session.delete(path)

            for path in ["a.yaml", "b.yaml", "prod/db.yaml", "prod/api.yaml"]:
                assert session.exists(path) == (path in expected)
                if path in expected:
                    assert session.read(path) == expected[path]

        if any(action == "publish" for action, _, _ in operations):
            with RepositorySession.open(endpoint) as reader:
                for path, data in expected.items():
                    assert reader.read(path) == data

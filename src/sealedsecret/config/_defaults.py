"""Default configuration values.

DEFAULT_CONFIG is a plain dict so it can be passed straight to deep_merge,
which never mutates its inputs.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "git": {
        "url": "",
        "source_branch": "",
        "target_branch": "main",
        "username": "",
        "token": "",
        "conflict_policy": "force-overwrite",
        "review_requests": False,
    },
    "controller": {
        "apply_timeout": 180.0,
        "refresh_timeout": 60.0,
    },
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
    },
}

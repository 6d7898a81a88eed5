"""Utility helpers for the git runner."""

from __future__ import annotations

import os
from typing import Mapping

_SANITIZED_VARS = {
    "GIT_DIR",
    "GIT_WORK_TREE",
    "GIT_INDEX_FILE",
    "GIT_OBJECT_DIRECTORY",
    "GIT_PREFIX",
}

# Never block on an interactive credential prompt while running unattended.
_FORCED_VARS = {
    "GIT_TERMINAL_PROMPT": "0",
    "GCM_INTERACTIVE": "never",
}


def sanitize_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a sanitized environment suitable for git subprocesses."""

    env = dict(os.environ)
    for key in _SANITIZED_VARS:
        env.pop(key, None)
    env.update(_FORCED_VARS)
    if additional:
        env.update(additional)
    return env

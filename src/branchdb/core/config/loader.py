"""
Environment-file cascade.

Database variables may come from the process environment or from ``.env``
files next to the project, merged in this order (later wins)::

    .env.base  →  .env.<tier>  →  .env.local  →  .env  →  os.environ

The tier comes from ``BRANCHDB_TIER`` (``staging``, ``prod``, ...).  The
merged mapping is what :func:`branchdb.core.config.databases.load_database_config`
and the catalog read when no explicit mapping is passed.

Tags:
    branchdb, configuration, env-files, cascading, loader

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from pathlib import Path

TIER_ENV_VAR = "BRANCHDB_TIER"

ROOT_MARKERS = ("pyproject.toml", ".git")

_ASSIGNMENT = re.compile(r"^(?:export\s+)?(?P<key>[A-Za-z_]\w*)\s*=\s*(?P<value>.*)$")
_QUOTES = ('"', "'")


def find_project_root(start: Path | None = None) -> Path:
    """Nearest directory at or above *start* holding a root marker.

    Falls back to *start* (or the working directory) when none is found.
    """
    origin = (start or Path.cwd()).resolve()
    for candidate in (origin, *origin.parents):
        if any((candidate / marker).exists() for marker in ROOT_MARKERS):
            return candidate
    return origin


def env_file_names(tier: str | None = None) -> list[str]:
    names = [".env.base"]
    if tier:
        names.append(f".env.{tier}")
    names += [".env.local", ".env"]
    return names


def discover_env_files(
    project_root: Path | None = None,
    tier: str | None = None,
) -> list[Path]:
    """Existing env files under *project_root*, in merge order."""
    root = (project_root or find_project_root()).resolve()
    names = env_file_names(tier or os.environ.get(TIER_ENV_VAR))
    return [root / name for name in names if (root / name).is_file()]


def _value(raw: str) -> str:
    raw = raw.strip()
    if len(raw) >= 2 and raw[0] in _QUOTES and raw[-1] == raw[0]:
        return raw[1:-1]
    comment = raw.find(" #")
    return raw[:comment].rstrip() if comment != -1 else raw


def parse_env_lines(lines: Iterable[str]) -> dict[str, str]:
    """``KEY=value`` pairs from dotenv-style lines.

    Understands comments, ``export`` prefixes, quoted values and trailing
    ``# comments`` on unquoted values.  Lines that are not assignments are
    ignored.
    """
    parsed: dict[str, str] = {}
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        match = _ASSIGNMENT.match(line)
        if match:
            parsed[match["key"]] = _value(match["value"])
    return parsed


def load_env_files(files: Iterable[Path]) -> dict[str, str]:
    """Merge env files; a key set in a later file replaces the earlier value."""
    merged: dict[str, str] = {}
    for path in files:
        merged |= parse_env_lines(path.read_text(encoding="utf-8").splitlines())
    return merged


def get_effective_env(
    project_root: Path | None = None,
    tier: str | None = None,
) -> dict[str, str]:
    """Env files merged under the live process environment."""
    return load_env_files(discover_env_files(project_root, tier)) | dict(os.environ)


__all__ = [
    "discover_env_files",
    "env_file_names",
    "find_project_root",
    "get_effective_env",
    "load_env_files",
    "parse_env_lines",
]

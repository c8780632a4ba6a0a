"""Environment loading helpers.

QUIESCE_* overrides can live in .env files as well as the process
environment. Only QUIESCE_* keys are taken from the files: quiesce runs a
third-party tool as a child process, and that tool inherits the environment.

Precedence implemented here:
  os.environ (pre-existing) > project .env > user .env
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

ENV_PREFIX = "QUIESCE_"


def _read_quiesce_env(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}

    values: dict[str, str] = {}
    for key, value in dotenv_values(path).items():
        if value is None:
            continue
        if not key.startswith(ENV_PREFIX):
            logger.debug("Ignoring %s in %s: not a %s* variable", key, path, ENV_PREFIX)
            continue
        values[key] = value
    return values


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, Path]:
    """Load QUIESCE_* variables from user and project .env files.

    Args:
        project_dir: base directory for the project .env (defaults to cwd)
        user_env_paths: explicit user env file paths
        project_env_paths: explicit project env file paths

    Returns:
        Mapping of each variable set here to the file it came from
    """
    if project_dir is None:
        project_dir = Path.cwd()

    if user_env_paths is None:
        xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
        user_env_paths = [xdg_home / "quiesce" / ".env"]

    if project_env_paths is None:
        project_env_paths = [project_dir / ".env"]

    applied: dict[str, Path] = {}

    for path in user_env_paths:
        for key, value in _read_quiesce_env(Path(path)).items():
            if key not in os.environ:
                os.environ[key] = value
                applied[key] = Path(path)

    # Project files may replace what a user file set, never the OS env
    for path in project_env_paths:
        for key, value in _read_quiesce_env(Path(path)).items():
            if key not in os.environ or key in applied:
                os.environ[key] = value
                applied[key] = Path(path)

    for key, source in applied.items():
        logger.debug("Loaded %s from %s", key, source)

    return applied

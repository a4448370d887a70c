from __future__ import annotations

import time
import tomllib
from pathlib import Path
from typing import Callable

from spin_plugin_releaser.common.config import DEFAULT_PACKAGE_FILE
from spin_plugin_releaser.common.errors import ConfigError


ROLLING_TAG = "canary"
ROLLING_VERSION_MARKER = "post."


def read_package_version(path: Path) -> str:
    """Return the declared version from a Cargo.toml or pyproject.toml file."""
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"package metadata file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"failed to parse {path}: {exc}") from exc

    for table in ("package", "project"):
        section = data.get(table)
        if isinstance(section, dict) and section.get("version"):
            return str(section["version"]).strip()
    raise ConfigError(f"no package version declared in {path}")


def resolve_version(
    tag_name: str,
    package_file: Path = Path(DEFAULT_PACKAGE_FILE),
    now: Callable[[], float] = time.time,
) -> str:
    if tag_name == ROLLING_TAG:
        return f"{read_package_version(package_file)}{ROLLING_VERSION_MARKER}{int(now())}"
    return tag_name.lstrip("v")

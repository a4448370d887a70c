from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from spin_plugin_releaser.common.errors import ConfigError


DEFAULT_TEMPLATE_FILE = ".spin-plugin.json.tmpl"
DEFAULT_PACKAGE_FILE = "Cargo.toml"
DEFAULT_INDENT = 6
DEFAULT_API_URL = "https://api.github.com"
RELEASE_BOT_WEBHOOK_URL = "https://spin-plugin-releaser.fermyon.app"


def _input(name: str, default: str = "") -> str:
    # Actions exposes `with:` inputs as INPUT_<NAME>, upper-cased with spaces as underscores.
    key = "INPUT_" + name.replace(" ", "_").upper()
    return os.environ.get(key, default).strip()


def parse_int(value: str, field_name: str, minimum: int = 0) -> int:
    try:
        parsed = int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"{field_name} must be an integer, got {value!r}") from exc
    if parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}, got {parsed}")
    return parsed


def parse_bool(value: str) -> bool:
    return str(value).strip().lower() == "true"


@dataclass(frozen=True)
class ActionConfig:
    ref: str
    actor: str
    repository: str
    github_token: str = ""
    template_file: Path = Path(DEFAULT_TEMPLATE_FILE)
    package_file: Path = Path(DEFAULT_PACKAGE_FILE)
    indent: int = DEFAULT_INDENT
    upload_checksums: bool = False
    api_url: str = DEFAULT_API_URL
    webhook_url: str = RELEASE_BOT_WEBHOOK_URL
    connect_timeout_seconds: int = 10
    read_timeout_seconds: int = 60
    max_retries: int = 0

    def __post_init__(self) -> None:
        if self.indent < 0:
            raise ConfigError(f"indent must be >= 0, got {self.indent}")
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must be >= 0, got {self.max_retries}")

    @classmethod
    def from_env(cls) -> "ActionConfig":
        return cls(
            ref=os.environ.get("GITHUB_REF", "").strip(),
            actor=os.environ.get("GITHUB_ACTOR", "").strip(),
            repository=os.environ.get("GITHUB_REPOSITORY", "").strip(),
            github_token=_input("github_token"),
            template_file=Path(_input("template_file") or DEFAULT_TEMPLATE_FILE),
            package_file=Path(_input("package_file") or DEFAULT_PACKAGE_FILE),
            indent=parse_int(_input("indent") or str(DEFAULT_INDENT), "indent"),
            upload_checksums=parse_bool(_input("upload_checksums", "false")),
            api_url=os.environ.get("GITHUB_API_URL", "").strip() or DEFAULT_API_URL,
            webhook_url=os.environ.get("PLUGIN_RELEASER_WEBHOOK_URL", "").strip() or RELEASE_BOT_WEBHOOK_URL,
            connect_timeout_seconds=parse_int(_input("connect_timeout") or "10", "connect_timeout", minimum=1),
            read_timeout_seconds=parse_int(_input("read_timeout") or "60", "read_timeout", minimum=1),
            max_retries=parse_int(_input("max_retries") or "0", "max_retries"),
        )

    def with_overrides(self, **changes: object) -> "ActionConfig":
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @property
    def owner(self) -> str:
        return self._split_repository()[0]

    @property
    def repo(self) -> str:
        return self._split_repository()[1]

    def _split_repository(self) -> tuple[str, str]:
        owner, sep, repo = self.repository.partition("/")
        if not sep or not owner or not repo or "/" in repo:
            raise ConfigError(f"GITHUB_REPOSITORY must look like 'owner/repo', got {self.repository!r}")
        return owner, repo

    @property
    def timeout(self) -> tuple[int, int]:
        return (self.connect_timeout_seconds, self.read_timeout_seconds)

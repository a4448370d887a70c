from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Callable

from jinja2 import StrictUndefined, TemplateSyntaxError, UndefinedError
from jinja2.sandbox import SandboxedEnvironment

from spin_plugin_releaser.common.config import DEFAULT_INDENT
from spin_plugin_releaser.common.errors import ManifestError
from spin_plugin_releaser.common.types import PluginManifest
from spin_plugin_releaser.releaser.hash_resolver import HashIndex


log = logging.getLogger(__name__)

DIRECTIVE_NAME = "addURLAndSha"

# Unquoted on purpose: a manifest carrying it can never parse as JSON.
MISSING_HASH_SENTINEL = "<missing-sha256>"

_MUSTACHE_OPEN = re.compile(r"\{\{\s*#\s*" + DIRECTIVE_NAME + r"\s*\}\}")
_MUSTACHE_CLOSE = re.compile(r"\{\{\s*/\s*" + DIRECTIVE_NAME + r"\s*\}\}")


def normalize_directive_syntax(template_text: str) -> str:
    """Rewrite mustache ``{{#addURLAndSha}}...{{/addURLAndSha}}`` sections as Jinja call blocks."""
    text = _MUSTACHE_OPEN.sub("{% call " + DIRECTIVE_NAME + "() %}", template_text)
    return _MUSTACHE_CLOSE.sub("{% endcall %}", text)


def format_url_and_sha(url: str, sha256: str | None, indent: int) -> str:
    hash_value = f'"{sha256}"' if sha256 is not None else MISSING_HASH_SENTINEL
    return f'"url": "{url}",\n{" " * indent}"sha256": {hash_value}'


class ManifestRenderer:
    """Renders a plugin manifest template against the release view.

    The view exposes ``TagName``, ``Version`` and the ``addURLAndSha``
    directive. The directive renders its body to a download URL, looks the
    URL up in the hash index and emits the ``url``/``sha256`` pair, indented
    to match the surrounding JSON. The rendered text is not inspected here;
    :func:`parse_manifest` does that afterwards.
    """

    def __init__(self, hash_index: HashIndex, indent: int = DEFAULT_INDENT):
        if indent < 0:
            raise ValueError(f"indent must be >= 0, got {indent}")
        self.hash_index = hash_index
        self.indent = indent
        self.env = SandboxedEnvironment(
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.missing_urls: list[str] = []

    def _add_url_and_sha(self, caller: Callable[[], str]) -> str:
        url = str(caller()).strip()
        sha256 = self.hash_index.get(url)
        if sha256 is None:
            log.warning("No uploaded asset matches %s; manifest will not parse", url)
            self.missing_urls.append(url)
        return format_url_and_sha(url, sha256, self.indent)

    def render(self, template_text: str, tag_name: str, version: str) -> str:
        self.missing_urls = []
        view = {
            "TagName": tag_name,
            "Version": version,
            DIRECTIVE_NAME: self._add_url_and_sha,
        }
        try:
            template = self.env.from_string(normalize_directive_syntax(template_text))
            return template.render(**view)
        except (TemplateSyntaxError, UndefinedError) as exc:
            raise ManifestError(f"failed to render manifest template: {exc}") from exc

    def render_file(self, path: Path, tag_name: str, version: str) -> str:
        try:
            template_text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ManifestError(f"manifest template not found: {path}") from exc
        return self.render(template_text, tag_name=tag_name, version=version)


def parse_manifest(rendered: str) -> PluginManifest:
    try:
        data = json.loads(rendered)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"rendered manifest is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError("rendered manifest must be a JSON object")
    missing = [k for k in ("name", "version") if not isinstance(data.get(k), str) or not data[k]]
    if missing:
        raise ManifestError(f"rendered manifest missing fields: {missing}")
    return PluginManifest(name=data["name"], version=data["version"], raw=data)

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from spin_plugin_releaser.common.errors import ManifestError
from spin_plugin_releaser.releaser.templating import (
    MISSING_HASH_SENTINEL,
    ManifestRenderer,
    format_url_and_sha,
    normalize_directive_syntax,
    parse_manifest,
)


LINUX_URL = "https://github.com/fermyon/spin-trigger-sqs/releases/download/v0.5.0/trigger-sqs-v0.5.0-linux-amd64.tar.gz"
MACOS_URL = "https://github.com/fermyon/spin-trigger-sqs/releases/download/v0.5.0/trigger-sqs-v0.5.0-macos-aarch64.tar.gz"
LINUX_SHA = "a" * 64
MACOS_SHA = "b" * 64

TEMPLATE = """{
  "name": "trigger-sqs",
  "version": "{{ Version }}",
  "packages": [
    {
      "os": "linux",
      "arch": "amd64",
      {% call addURLAndSha() %}https://github.com/fermyon/spin-trigger-sqs/releases/download/{{ TagName }}/trigger-sqs-{{ TagName }}-linux-amd64.tar.gz{% endcall %}
    },
    {
      "os": "macos",
      "arch": "aarch64",
      {% call addURLAndSha() %}https://github.com/fermyon/spin-trigger-sqs/releases/download/{{ TagName }}/trigger-sqs-{{ TagName }}-macos-aarch64.tar.gz{% endcall %}
    }
  ]
}
"""

MUSTACHE_TEMPLATE = """{
  "name": "trigger-sqs",
  "version": "{{Version}}",
  "packages": [
    {
      "os": "linux",
      {{#addURLAndSha}}https://github.com/fermyon/spin-trigger-sqs/releases/download/{{TagName}}/trigger-sqs-{{TagName}}-linux-amd64.tar.gz{{/addURLAndSha}}
    }
  ]
}
"""


def _index() -> dict[str, str]:
    return {LINUX_URL: LINUX_SHA, MACOS_URL: MACOS_SHA}


class RenderTests(unittest.TestCase):
    def test_directive_resolves_url_and_hash(self) -> None:
        rendered = ManifestRenderer(_index()).render(TEMPLATE, tag_name="v0.5.0", version="0.5.0")
        manifest = parse_manifest(rendered)

        self.assertEqual(manifest.name, "trigger-sqs")
        self.assertEqual(manifest.version, "0.5.0")
        packages = manifest.raw["packages"]
        self.assertEqual(packages[0]["url"], LINUX_URL)
        self.assertEqual(packages[0]["sha256"], LINUX_SHA)
        self.assertEqual(packages[1]["url"], MACOS_URL)
        self.assertEqual(packages[1]["sha256"], MACOS_SHA)

    def test_indent_prefixes_hash_line(self) -> None:
        for indent in (0, 6, 10):
            with self.subTest(indent=indent):
                rendered = ManifestRenderer(_index(), indent=indent).render(
                    TEMPLATE, tag_name="v0.5.0", version="0.5.0"
                )
                hash_lines = [line for line in rendered.splitlines() if '"sha256"' in line]
                self.assertEqual(len(hash_lines), 2)
                for line in hash_lines:
                    self.assertEqual(line, " " * indent + f'"sha256": "{line.split(chr(34))[3]}"')
                json.loads(rendered)

    def test_fragment_shape(self) -> None:
        self.assertEqual(
            format_url_and_sha("https://x/a.tar.gz", "ff", 4),
            '"url": "https://x/a.tar.gz",\n    "sha256": "ff"',
        )

    def test_missing_hash_renders_sentinel_and_fails_parse(self) -> None:
        renderer = ManifestRenderer({LINUX_URL: LINUX_SHA})
        rendered = renderer.render(TEMPLATE, tag_name="v0.5.0", version="0.5.0")

        self.assertIn(MISSING_HASH_SENTINEL, rendered)
        self.assertEqual(renderer.missing_urls, [MACOS_URL])
        with self.assertRaises(ManifestError):
            parse_manifest(rendered)

    def test_missing_urls_cover_only_the_latest_render(self) -> None:
        renderer = ManifestRenderer({LINUX_URL: LINUX_SHA})
        renderer.render(TEMPLATE, tag_name="v0.5.0", version="0.5.0")
        renderer.render(TEMPLATE, tag_name="v0.5.0", version="0.5.0")
        self.assertEqual(renderer.missing_urls, [MACOS_URL])

        renderer.render(MUSTACHE_TEMPLATE, tag_name="v0.5.0", version="0.5.0")
        self.assertEqual(renderer.missing_urls, [])

    def test_mustache_sections_are_accepted(self) -> None:
        rendered = ManifestRenderer(_index()).render(MUSTACHE_TEMPLATE, tag_name="v0.5.0", version="0.5.0")
        manifest = parse_manifest(rendered)
        self.assertEqual(manifest.raw["packages"][0]["sha256"], LINUX_SHA)
        self.assertEqual(manifest.version, "0.5.0")

    def test_normalize_leaves_other_tags_alone(self) -> None:
        text = "{{TagName}} {{#addURLAndSha}}u{{/addURLAndSha}}"
        self.assertEqual(
            normalize_directive_syntax(text),
            "{{TagName}} {% call addURLAndSha() %}u{% endcall %}",
        )

    def test_whitespace_around_url_is_trimmed(self) -> None:
        template = '{"name": "p", "version": "1", {% call addURLAndSha() %}\n  ' + LINUX_URL + "\n{% endcall %}}"
        manifest = parse_manifest(ManifestRenderer(_index(), indent=0).render(template, "v0.5.0", "1"))
        self.assertEqual(manifest.raw["url"], LINUX_URL)

    def test_undefined_placeholder_fails(self) -> None:
        with self.assertRaises(ManifestError):
            ManifestRenderer(_index()).render('{"name": "{{ Missing }}"}', tag_name="v1", version="1")

    def test_syntax_error_fails(self) -> None:
        with self.assertRaises(ManifestError):
            ManifestRenderer(_index()).render("{% call addURLAndSha() %}", tag_name="v1", version="1")

    def test_render_file_missing(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ManifestError):
                ManifestRenderer(_index()).render_file(Path(td) / "missing.tmpl", "v1", "1")

    def test_negative_indent_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ManifestRenderer(_index(), indent=-1)


class ParseManifestTests(unittest.TestCase):
    def test_requires_name_and_version(self) -> None:
        with self.assertRaises(ManifestError):
            parse_manifest('{"name": "x"}')

    def test_requires_object(self) -> None:
        with self.assertRaises(ManifestError):
            parse_manifest("[1, 2]")

    def test_invalid_json_message_is_kept(self) -> None:
        with self.assertRaises(ManifestError) as ctx:
            parse_manifest('{"name": "x",}')
        self.assertIn("not valid JSON", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()

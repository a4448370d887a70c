from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Callable

from spin_plugin_releaser import __version__ as RELEASER_VERSION
from spin_plugin_releaser.common.config import ActionConfig
from spin_plugin_releaser.common.errors import ReleaseError
from spin_plugin_releaser.common.logging_utils import configure_logging, report_failure
from spin_plugin_releaser.common.types import PluginManifest
from spin_plugin_releaser.releaser.dispatcher import ReleaseDispatcher, resolve_target
from spin_plugin_releaser.releaser.github_client import GitHubClient
from spin_plugin_releaser.releaser.hash_resolver import HashResolver
from spin_plugin_releaser.releaser.templating import ManifestRenderer, parse_manifest
from spin_plugin_releaser.releaser.version import resolve_version


log = logging.getLogger(__name__)


def run_release(
    config: ActionConfig,
    client: GitHubClient,
    now: Callable[[], float] = time.time,
) -> PluginManifest:
    target = resolve_target(config.ref)
    version = resolve_version(target.tag_name, package_file=config.package_file, now=now)
    log.info("Releasing %s as version %s (%s channel)", target.tag_name, version, target.channel.value)

    release = client.find_release(config.owner, config.repo, target.tag_name)
    hash_index = HashResolver(client).resolve(release)

    renderer = ManifestRenderer(hash_index, indent=config.indent)
    rendered = renderer.render_file(config.template_file, tag_name=target.tag_name, version=version)
    manifest = parse_manifest(rendered)

    ReleaseDispatcher(client, config).dispatch(target, release, manifest, rendered, hash_index)
    return manifest


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render and publish a Spin plugin manifest for a release")
    parser.add_argument("--template-file", type=Path, help="Manifest template path.")
    parser.add_argument("--indent", type=int, help="Indent of the emitted sha256 line.")
    parser.add_argument(
        "--upload-checksums",
        action="store_true",
        default=None,
        help="Also upload checksums-<tag>.txt for tagged releases.",
    )
    parser.add_argument("--log-level", default=None, help="Log level.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {RELEASER_VERSION}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = ActionConfig.from_env().with_overrides(
            template_file=args.template_file,
            indent=args.indent,
            upload_checksums=args.upload_checksums,
        )
        with GitHubClient.from_config(config) as client:
            manifest = run_release(config, client)
    except ReleaseError as exc:
        report_failure(str(exc))
        return 1
    except Exception as exc:
        log.exception("Unexpected failure")
        report_failure(str(exc))
        return 1

    log.info("Released %s %s", manifest.name, manifest.version)
    return 0

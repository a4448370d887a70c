from __future__ import annotations

import base64
import json
import logging
from typing import Any, Protocol

from spin_plugin_releaser.common.config import ActionConfig
from spin_plugin_releaser.common.errors import InvalidRefError
from spin_plugin_releaser.common.types import (
    Channel,
    PluginManifest,
    Release,
    ReleaseRequest,
    ReleaseTarget,
)
from spin_plugin_releaser.releaser.hash_resolver import HashIndex
from spin_plugin_releaser.releaser.version import ROLLING_TAG


log = logging.getLogger(__name__)

TAG_REF_PREFIX = "refs/tags/"
TRUNK_REF = "refs/heads/main"
CHECKSUM_ARCHIVE_SUFFIX = ".tar.gz"
STAGED_ASSET_SUFFIX = ".staged"


class ReleaseTransport(Protocol):
    def upload_release_asset(
        self, release: Release, name: str, data: bytes | str, content_type: str = ...
    ) -> dict[str, Any]: ...

    def delete_release_asset(self, owner: str, repo: str, asset_id: int) -> None: ...

    def rename_release_asset(self, owner: str, repo: str, asset_id: int, name: str) -> dict[str, Any]: ...

    def post_webhook(self, url: str, payload: dict[str, Any]) -> None: ...


def resolve_target(ref: str) -> ReleaseTarget:
    if ref.startswith(TAG_REF_PREFIX + "v"):
        return ReleaseTarget(channel=Channel.TAGGED, tag_name=ref[len(TAG_REF_PREFIX):])
    if ref == TRUNK_REF:
        return ReleaseTarget(channel=Channel.ROLLING, tag_name=ROLLING_TAG)
    raise InvalidRefError(ref)


def encode_template(rendered: str) -> str:
    return base64.b64encode(rendered.encode("utf-8")).decode("ascii")


def asset_filename(url: str) -> str:
    name = url.rsplit("/", 1)[-1]
    if not name:
        raise ValueError(f"failed to find filename from asset url {url!r}")
    return name


def build_checksum_listing(hash_index: HashIndex, suffix: str = CHECKSUM_ARCHIVE_SUFFIX) -> str:
    lines = [
        f"{digest}  {asset_filename(url)}"
        for url, digest in hash_index.items()
        if url.endswith(suffix)
    ]
    return "\n".join(lines)


def build_release_request(
    tag_name: str,
    manifest: PluginManifest,
    rendered: str,
    config: ActionConfig,
) -> ReleaseRequest:
    return ReleaseRequest(
        tag_name=tag_name,
        plugin_name=manifest.name,
        plugin_repo=config.repo,
        plugin_owner=config.owner,
        plugin_release_actor=config.actor,
        processed_template=encode_template(rendered),
    )


class ReleaseDispatcher:
    def __init__(self, transport: ReleaseTransport, config: ActionConfig):
        self.transport = transport
        self.config = config

    def dispatch(
        self,
        target: ReleaseTarget,
        release: Release,
        manifest: PluginManifest,
        rendered: str,
        hash_index: HashIndex,
    ) -> None:
        if target.channel is Channel.ROLLING:
            self._publish_rolling(release, manifest, rendered)
        else:
            self._request_pull_request(target, release, manifest, rendered, hash_index)

    def _publish_rolling(self, release: Release, manifest: PluginManifest, rendered: str) -> None:
        name = f"{manifest.name}.json"
        existing = release.find_asset(name)
        log.info("uploading asset to %s release", release.tag_name)
        if existing is None:
            self.transport.upload_release_asset(release, name, rendered, content_type="application/json")
        else:
            # The previous manifest stays in place until the new one is fully uploaded.
            staged_name = f"{name}{STAGED_ASSET_SUFFIX}"
            leftover = release.find_asset(staged_name)
            if leftover is not None:
                self.transport.delete_release_asset(self.config.owner, self.config.repo, leftover.asset_id)
            staged = self.transport.upload_release_asset(
                release, staged_name, rendered, content_type="application/json"
            )
            log.info("Replacing existing %s on %s release", name, release.tag_name)
            self.transport.delete_release_asset(self.config.owner, self.config.repo, existing.asset_id)
            self.transport.rename_release_asset(self.config.owner, self.config.repo, int(staged["id"]), name)
        log.info("added %s file to release with tag %s", name, release.tag_name)

    def _request_pull_request(
        self,
        target: ReleaseTarget,
        release: Release,
        manifest: PluginManifest,
        rendered: str,
        hash_index: HashIndex,
    ) -> None:
        request = build_release_request(target.tag_name, manifest, rendered, self.config)
        payload = request.to_payload()
        log.debug("Release request:\n%s", json.dumps(payload, indent="\t"))

        if self.config.upload_checksums:
            listing = build_checksum_listing(hash_index)
            self.transport.upload_release_asset(
                release,
                f"checksums-{target.tag_name}.txt",
                listing,
                content_type="text/plain",
            )

        log.info("making webhook request to create PR")
        self.transport.post_webhook(self.config.webhook_url, payload)

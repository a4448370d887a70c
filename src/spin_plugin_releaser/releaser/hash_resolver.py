from __future__ import annotations

import hashlib
import logging
import tempfile
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Protocol

import requests

from spin_plugin_releaser.common.errors import AssetFetchError
from spin_plugin_releaser.common.types import Release, ReleaseAsset


log = logging.getLogger(__name__)

HashIndex = Mapping[str, str]


def sha256_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for block in iter(lambda: fh.read(chunk_size), b""):
            digest.update(block)
    return digest.hexdigest()


class AssetDownloader(Protocol):
    def download_asset(self, url: str, destination: Path) -> Path: ...


class HashResolver:
    """Builds the download-url -> sha256 index for every asset of a release.

    Assets are downloaded one after another into a scratch directory that
    only lives for the duration of :meth:`resolve`. The first failed
    download aborts the whole resolution.
    """

    def __init__(self, downloader: AssetDownloader, chunk_size: int = 1024 * 1024):
        self.downloader = downloader
        self.chunk_size = chunk_size

    def resolve(self, release: Release) -> HashIndex:
        index: dict[str, str] = {}
        total = len(release.assets)
        with tempfile.TemporaryDirectory(prefix="spin-plugin-assets-") as td:
            scratch = Path(td)
            for idx, asset in enumerate(release.assets, start=1):
                if asset.download_url in index:
                    raise AssetFetchError(f"release {release.tag_name} lists {asset.download_url} twice")
                digest = self._hash_asset(asset, scratch / f"{idx:04d}.bin")
                index[asset.download_url] = digest
                log.info("[%d/%d] %s sha256=%s", idx, total, asset.name, digest)
        return MappingProxyType(index)

    def _hash_asset(self, asset: ReleaseAsset, destination: Path) -> str:
        try:
            path = self.downloader.download_asset(asset.download_url, destination)
        except (requests.RequestException, OSError) as exc:
            raise AssetFetchError(f"failed to download asset {asset.name} from {asset.download_url}: {exc}") from exc
        return sha256_file(path, chunk_size=self.chunk_size)

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Iterator
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from spin_plugin_releaser import __version__ as RELEASER_VERSION
from spin_plugin_releaser.common.config import DEFAULT_API_URL, ActionConfig
from spin_plugin_releaser.common.errors import DeliveryError, ReleaseError, ReleaseNotFoundError
from spin_plugin_releaser.common.types import Release


log = logging.getLogger(__name__)

USER_AGENT = f"spin-plugins-releaser/{RELEASER_VERSION}"
RELEASES_PAGE_SIZE = 100


def _normalize_host(host: str) -> str:
    return str(host or "").strip().lower().rstrip(".")


def _is_allowed_host(host: str, allowed_hosts: Iterable[str]) -> bool:
    normalized = _normalize_host(host)
    if not normalized:
        return False
    allowed = {_normalize_host(v) for v in allowed_hosts}
    if normalized in allowed:
        return True
    return any(normalized.endswith("." + entry) for entry in allowed)


class GitHubClient:
    """Thin wrapper over the GitHub REST API, scoped to a single release run."""

    def __init__(
        self,
        token: str = "",
        api_url: str = DEFAULT_API_URL,
        timeout: tuple[int, int] = (10, 60),
        max_retries: int = 0,
        download_chunk_size: int = 1024 * 1024,
    ):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.download_chunk_size = download_chunk_size
        self.token_hosts = ("github.com", urlparse(self.api_url).hostname or "")
        self.session = requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT
        # Only idempotent reads are retried; uploads and the webhook are sent once.
        retry = Retry(
            total=max_retries,
            connect=max_retries,
            read=max_retries,
            status=max_retries,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"GET", "HEAD"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @classmethod
    def from_config(cls, config: ActionConfig) -> "GitHubClient":
        return cls(
            token=config.github_token,
            api_url=config.api_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _headers(self, url: str, accept: str = "application/vnd.github+json") -> dict[str, str]:
        headers = {"Accept": accept}
        if self.token and _is_allowed_host(urlparse(url).hostname or "", self.token_hosts):
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def iter_releases(self, owner: str, repo: str) -> Iterator[dict[str, Any]]:
        url: str | None = f"{self.api_url}/repos/{owner}/{repo}/releases"
        params: dict[str, Any] | None = {"per_page": RELEASES_PAGE_SIZE}
        while url:
            try:
                resp = self.session.get(url, params=params, headers=self._headers(url), timeout=self.timeout)
                resp.raise_for_status()
            except requests.RequestException as exc:
                raise ReleaseError(f"failed to list releases for {owner}/{repo}: {exc}") from exc
            yield from resp.json()
            url = resp.links.get("next", {}).get("url")
            # The "next" link already carries the query string.
            params = None

    def find_release(self, owner: str, repo: str, tag_name: str) -> Release:
        log.info("Looking up release %s in %s/%s", tag_name, owner, repo)
        for item in self.iter_releases(owner, repo):
            if item.get("tag_name") == tag_name:
                release = Release.from_api(item)
                log.info("Found release id=%s with %d assets", release.release_id, len(release.assets))
                return release
        raise ReleaseNotFoundError(tag_name)

    def download_asset(self, url: str, destination: Path) -> Path:
        """Stream ``url`` into ``destination``; HTTP and transport errors propagate."""
        log.info("Downloading %s", url)
        with self.session.get(
            url,
            stream=True,
            headers=self._headers(url, accept="application/octet-stream"),
            timeout=self.timeout,
        ) as resp:
            resp.raise_for_status()
            with destination.open("wb") as fh:
                for chunk in resp.iter_content(chunk_size=self.download_chunk_size):
                    if chunk:
                        fh.write(chunk)
        return destination

    def upload_release_asset(
        self,
        release: Release,
        name: str,
        data: bytes | str,
        content_type: str = "application/octet-stream",
    ) -> dict[str, Any]:
        if not release.upload_url:
            raise DeliveryError(f"release {release.tag_name} has no upload url")
        url = release.upload_url.split("{", 1)[0]
        body = data.encode("utf-8") if isinstance(data, str) else data
        headers = self._headers(url)
        headers["Content-Type"] = content_type
        log.info("Uploading %s (%d bytes) to release %s", name, len(body), release.tag_name)
        try:
            resp = self.session.post(url, params={"name": name}, data=body, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise DeliveryError(f"failed to upload {name} to release {release.tag_name}: {exc}") from exc
        return resp.json()

    def delete_release_asset(self, owner: str, repo: str, asset_id: int) -> None:
        url = f"{self.api_url}/repos/{owner}/{repo}/releases/assets/{asset_id}"
        try:
            resp = self.session.delete(url, headers=self._headers(url), timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise DeliveryError(f"failed to delete release asset {asset_id}: {exc}") from exc

    def rename_release_asset(self, owner: str, repo: str, asset_id: int, name: str) -> dict[str, Any]:
        url = f"{self.api_url}/repos/{owner}/{repo}/releases/assets/{asset_id}"
        try:
            resp = self.session.patch(url, json={"name": name}, headers=self._headers(url), timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise DeliveryError(f"failed to rename release asset {asset_id} to {name}: {exc}") from exc
        return resp.json()

    def post_webhook(self, url: str, payload: dict[str, Any]) -> None:
        try:
            resp = self.session.post(
                url,
                json=payload,
                headers=self._headers(url, accept="application/json"),
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise DeliveryError(f"webhook request to {url} failed: {exc}") from exc
        log.info("Webhook accepted with status %s", resp.status_code)

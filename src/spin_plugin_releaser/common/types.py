from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping


class Channel(enum.Enum):
    TAGGED = "tagged"
    ROLLING = "rolling"


@dataclass(frozen=True)
class ReleaseTarget:
    channel: Channel
    tag_name: str


@dataclass(frozen=True)
class ReleaseAsset:
    asset_id: int
    name: str
    download_url: str
    size: int = 0

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "ReleaseAsset":
        return cls(
            asset_id=int(data["id"]),
            name=str(data["name"]),
            download_url=str(data["browser_download_url"]),
            size=int(data.get("size") or 0),
        )


@dataclass(frozen=True)
class Release:
    release_id: int
    tag_name: str
    upload_url: str
    assets: tuple[ReleaseAsset, ...]

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Release":
        return cls(
            release_id=int(data["id"]),
            tag_name=str(data["tag_name"]),
            upload_url=str(data.get("upload_url") or ""),
            assets=tuple(ReleaseAsset.from_api(item) for item in data.get("assets") or ()),
        )

    def find_asset(self, name: str) -> ReleaseAsset | None:
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None


@dataclass(frozen=True)
class PluginManifest:
    name: str
    version: str
    raw: Mapping[str, Any]


@dataclass(frozen=True)
class ReleaseRequest:
    tag_name: str
    plugin_name: str
    plugin_repo: str
    plugin_owner: str
    plugin_release_actor: str
    processed_template: str

    def to_payload(self) -> dict[str, str]:
        return {
            "tagName": self.tag_name,
            "pluginName": self.plugin_name,
            "pluginRepo": self.plugin_repo,
            "pluginOwner": self.plugin_owner,
            "pluginReleaseActor": self.plugin_release_actor,
            "processedTemplate": self.processed_template,
        }

from spin_plugin_releaser.common.config import ActionConfig
from spin_plugin_releaser.common.errors import (
    AssetFetchError,
    ConfigError,
    DeliveryError,
    InvalidRefError,
    ManifestError,
    ReleaseError,
    ReleaseNotFoundError,
)

__all__ = [
    "ActionConfig",
    "AssetFetchError",
    "ConfigError",
    "DeliveryError",
    "InvalidRefError",
    "ManifestError",
    "ReleaseError",
    "ReleaseNotFoundError",
]

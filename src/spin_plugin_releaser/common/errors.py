from __future__ import annotations


class ReleaseError(RuntimeError):
    """Base class for every failure that aborts a release run."""


class ConfigError(ReleaseError):
    pass


class InvalidRefError(ReleaseError):
    def __init__(self, ref: str):
        super().__init__(f"invalid ref '{ref}' found")
        self.ref = ref


class ReleaseNotFoundError(ReleaseError):
    def __init__(self, tag_name: str):
        super().__init__(f"no release found with tag {tag_name}")
        self.tag_name = tag_name


class AssetFetchError(ReleaseError):
    pass


class ManifestError(ReleaseError):
    pass


class DeliveryError(ReleaseError):
    pass

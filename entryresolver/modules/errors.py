"""
Error taxonomy for a single entrypoint/cmd resolution.

Every failure aborts the resolution it belongs to and is raised to the
caller. Nothing here is retried.
"""


class ResolutionError(Exception):
    """Base class for all resolution failures."""


class MissingTagError(ResolutionError):
    """Image reference has no explicit tag."""


class SecretNotFoundError(ResolutionError):
    """Image pull secret could not be read from the Kubernetes API."""


class MalformedSecretError(ResolutionError):
    """Image pull secret does not hold a usable docker config."""


class RegistryConnectionError(ResolutionError):
    """Registry (or API server) unreachable, TLS failure or timeout."""


class ManifestNotFoundError(ResolutionError):
    """Manifest for repository:tag could not be fetched."""


class BlobDownloadError(ResolutionError):
    """Config blob could not be downloaded."""


class DecodeError(ResolutionError):
    """Config blob is not the expected JSON shape."""

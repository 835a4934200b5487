"""Resolve the Entrypoint and Cmd of container images referenced by Kubernetes pods."""

from entryresolver.modules.errors import (
    ResolutionError,
    MissingTagError,
    SecretNotFoundError,
    MalformedSecretError,
    RegistryConnectionError,
    ManifestNotFoundError,
    BlobDownloadError,
    DecodeError,
)
from entryresolver.modules.finders import ContainerImageConfig, fetch_entrypoint_cmd
from entryresolver.modules.formatters import ImageReference, parse_image_ref
from entryresolver.modules.pullsecrets import PullContext, RegistryCredentials, resolve_credentials
from entryresolver.modules.resolver import get_entrypoint_cmd, load_core_v1

__all__ = [
    "ResolutionError",
    "MissingTagError",
    "SecretNotFoundError",
    "MalformedSecretError",
    "RegistryConnectionError",
    "ManifestNotFoundError",
    "BlobDownloadError",
    "DecodeError",
    "ContainerImageConfig",
    "ImageReference",
    "PullContext",
    "RegistryCredentials",
    "fetch_entrypoint_cmd",
    "get_entrypoint_cmd",
    "load_core_v1",
    "parse_image_ref",
    "resolve_credentials",
]

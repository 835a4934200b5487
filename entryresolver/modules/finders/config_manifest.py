"""
Image config fetching.

Retrieves the configuration blob of a container image from a v2 registry
and pulls Entrypoint and Cmd out of it.

Every call opens its own authenticated session and closes it before
returning. Nothing is cached.
"""

import json
import logging
from typing import Optional

import requests

from entryresolver.config import REGISTRY_PLATFORM, REGISTRY_TIMEOUT, registry_skip_verify
from entryresolver.modules.auth import RegistryAuth
from entryresolver.modules.errors import (
    BlobDownloadError,
    DecodeError,
    ManifestNotFoundError,
    RegistryConnectionError,
)
from entryresolver.modules.finders.imageConfigResult import ContainerImageConfig
from entryresolver.modules.formatters import registry_base_url


log = logging.getLogger(__name__)


def fetch_entrypoint_cmd(
    registry_address: str,
    username: str,
    password: str,
    repository: str,
    tag: str,
    skip_verify: Optional[bool] = None,
    timeout: float = REGISTRY_TIMEOUT,
    platform: str = REGISTRY_PLATFORM,
    logger: Optional[logging.Logger] = None,
) -> ContainerImageConfig:
    """
    Fetch Entrypoint and Cmd of repository:tag from a registry.

    Handles both multi-arch manifest lists and single-arch manifests.

    Args:
        registry_address: Scheme-qualified registry address (e.g., "https://myregistry.io")
        username: Registry username, empty for anonymous pulls
        password: Registry password
        repository: Repository path inside the registry (e.g., "library/nginx")
        tag: Image tag (e.g., "1.19")
        skip_verify: Skip TLS verification. None defers to REGISTRY_SKIP_VERIFY.
        timeout: Seconds allowed for each HTTP call
        platform: "os/arch" picked from multi-arch manifest lists

    Returns:
        ContainerImageConfig with entrypoint and cmd, empty lists when unset

    Raises:
        RegistryConnectionError: Registry unreachable, TLS failure or timeout
        ManifestNotFoundError: Manifest missing, unauthorized or unreadable
        BlobDownloadError: Config blob could not be downloaded
        DecodeError: Config blob is not the expected JSON shape
    """
    logger = logger or log
    if skip_verify is None:
        skip_verify = registry_skip_verify()

    auth = RegistryAuth(
        registry_address,
        username,
        password,
        repository=repository,
        verify=not skip_verify,
        timeout=timeout,
        logger=logger,
    )
    base_url = registry_base_url(registry_address, repository)

    try:
        _ping(auth, registry_address)
        config_digest = _fetch_config_digest(auth, base_url, tag, platform, logger)
        logger.debug("Config digest for %s:%s is %s", repository, tag, config_digest)
        blob = _download_blob(auth, base_url, config_digest)
        image_config = decode_image_config(blob)
    finally:
        auth.invalidate()

    logger.info(
        "Resolved %s:%s from %s: entrypoint=%s cmd=%s",
        repository, tag, registry_address, image_config.entrypoint, image_config.cmd,
    )
    return image_config


def _ping(auth: RegistryAuth, registry_address: str) -> None:
    """Check the registry speaks v2 and settle authentication up front."""
    url = f"{registry_address.rstrip('/')}/v2/"
    try:
        resp = auth.request_with_retry("GET", url)
    except (requests.RequestException, ValueError) as exc:
        raise RegistryConnectionError(f"Cannot create client for registry {registry_address}: {exc}") from exc

    if resp.status_code >= 500:
        raise RegistryConnectionError(
            f"Registry {registry_address} answered {resp.status_code} to ping"
        )


def _fetch_manifest(auth: RegistryAuth, base_url: str, ref: str) -> dict:
    url = f"{base_url}/manifests/{ref}"
    try:
        resp = auth.request_with_retry("GET", url)
    except requests.Timeout as exc:
        raise RegistryConnectionError(f"Timed out fetching manifest {url}") from exc
    except (requests.RequestException, ValueError) as exc:
        raise ManifestNotFoundError(f"Cannot download manifest {url}: {exc}") from exc

    if not resp.ok:
        raise ManifestNotFoundError(f"Cannot download manifest {url}: HTTP {resp.status_code}")

    try:
        manifest = resp.json()
    except ValueError as exc:
        raise ManifestNotFoundError(f"Manifest {url} is not valid JSON") from exc
    if not isinstance(manifest, dict):
        raise ManifestNotFoundError(f"Manifest {url} is not a JSON object")
    return manifest


def _fetch_config_digest(
    auth: RegistryAuth,
    base_url: str,
    tag: str,
    platform: str,
    logger: logging.Logger,
) -> str:
    # Fetch whatever the tag points to (index OR manifest)
    manifest = _fetch_manifest(auth, base_url, tag)

    # CASE 1: Multi-arch index (has "manifests" key)
    if "manifests" in manifest:
        platform_manifest = _select_platform(manifest["manifests"], platform)
        if platform_manifest is None or not platform_manifest.get("digest"):
            raise ManifestNotFoundError(f"No platform manifest found for {base_url}:{tag}")
        logger.debug("Multi-arch image %s:%s, using %s", base_url, tag, platform_manifest["digest"])
        manifest = _fetch_manifest(auth, base_url, platform_manifest["digest"])

    # CASE 2: Single-arch manifest (or resolved from multi-arch above)
    config = manifest.get("config")
    if not isinstance(config, dict) or not config.get("digest"):
        raise ManifestNotFoundError(f"Manifest for {base_url}:{tag} has no config digest")
    return config["digest"]


def _select_platform(manifests: list, platform: str) -> Optional[dict]:
    """
    Select a platform manifest from a multi-arch manifest list.

    Args:
        manifests: List of platform manifests from the index
        platform: "os/arch" or "os/arch/variant" (e.g., "linux/arm64/v8")

    Returns:
        The matching manifest dict, the first entry when nothing matches,
        or None for an empty list.
    """
    if not manifests:
        return None

    wanted = platform.split("/")
    for m in manifests:
        plat = m.get("platform") or {}
        have = [plat.get("os"), plat.get("architecture"), plat.get("variant")]
        if have[:len(wanted)] == wanted:
            return m

    return manifests[0]


def _download_blob(auth: RegistryAuth, base_url: str, digest: str) -> bytes:
    url = f"{base_url}/blobs/{digest}"
    try:
        resp = auth.request_with_retry("GET", url)
    except requests.Timeout as exc:
        raise RegistryConnectionError(f"Timed out downloading blob {url}") from exc
    except (requests.RequestException, ValueError) as exc:
        raise BlobDownloadError(f"Cannot download blob {url}: {exc}") from exc

    if not resp.ok:
        raise BlobDownloadError(f"Cannot download blob {url}: HTTP {resp.status_code}")
    return resp.content


def _string_list(config: dict, key: str) -> list[str]:
    value = config.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise DecodeError(f"config.{key} is not a list of strings")
    return list(value)


def decode_image_config(blob: bytes) -> ContainerImageConfig:
    """
    Decode {"config": {"Entrypoint": [...], "Cmd": [...]}} from a config blob.

    Missing or null arrays decode as empty lists.
    """
    try:
        document = json.loads(blob)
    except ValueError as exc:
        raise DecodeError(f"Cannot unmarshal config blob: {exc}") from exc
    if not isinstance(document, dict):
        raise DecodeError("Config blob is not a JSON object")

    config = document.get("config")
    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise DecodeError("config is not a JSON object")

    return ContainerImageConfig(
        entrypoint=_string_list(config, "Entrypoint"),
        cmd=_string_list(config, "Cmd"),
    )

# formatters.py
# Image reference and registry address helpers

from dataclasses import dataclass

from entryresolver.config import DOCKERHUB_HOSTS
from entryresolver.modules.errors import MissingTagError


HTTPS_PREFIX = "https://"


@dataclass(frozen=True)
class ImageReference:
    """Repository and tag of an image reference."""
    repository: str
    tag: str


## Image references

def parse_image_ref(image_ref: str) -> ImageReference:
    """
    Split an image reference like 'library/nginx:1.19' at the first colon.

    No tag means no way to pick a manifest, so this raises instead of
    assuming 'latest'. Characters are not validated; a bad repository or
    tag is left for the registry to reject.
    """
    if ":" not in image_ref:
        raise MissingTagError(f"Cannot find tag for image {image_ref!r}")
    repository, tag = image_ref.split(":", 1)
    return ImageReference(repository=repository, tag=tag)


def strip_registry_host(image: str, host: str) -> str:
    """
    Remove a leading '<host>/' from an image name.

    Only an exact prefix is removed; a scheme on the host is ignored for the
    comparison. Images from another registry come back unchanged.
    """
    bare_host = host[len(HTTPS_PREFIX):] if host.startswith(HTTPS_PREFIX) else host
    bare_host = bare_host.rstrip("/")
    if not bare_host:
        return image
    prefix = f"{bare_host}/"
    if image.startswith(prefix):
        return image[len(prefix):]
    return image


## Registry addresses

def registry_address(host: str) -> str:
    """Scheme-qualified address for an auths key from a docker config."""
    if host.startswith(HTTPS_PREFIX):
        return host
    return f"{HTTPS_PREFIX}{host}"


def registry_base_url(address: str, repository: str) -> str:
    return f"{address.rstrip('/')}/v2/{repository}"


def is_dockerhub(address: str) -> bool:
    host = address.split("://", 1)[-1].split("/", 1)[0]
    return host in DOCKERHUB_HOSTS


def normalize_repository(repository: str, address: str) -> str:
    """Docker Hub keeps official images under the 'library/' namespace."""
    if is_dockerhub(address) and "/" not in repository:
        return f"library/{repository}"
    return repository

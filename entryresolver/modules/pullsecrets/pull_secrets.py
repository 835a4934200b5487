"""
Registry credentials from Kubernetes image pull secrets.

Reads the pod's pull secret, decodes its .dockerconfigjson payload and picks
one registry out of the 'auths' map. Only one secret and one registry are
ever used per resolution.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from kubernetes.client.rest import ApiException  # type: ignore
from urllib3.exceptions import HTTPError, TimeoutError as Urllib3TimeoutError

from entryresolver.config import SECRET_READ_TIMEOUT
from entryresolver.modules.errors import (
    MalformedSecretError,
    RegistryConnectionError,
    SecretNotFoundError,
)
from entryresolver.modules.formatters import registry_address


log = logging.getLogger(__name__)

DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class RegistryCredentials:
    """Credentials for one registry. All-empty means anonymous."""
    host: str = ""
    address: str = ""
    username: str = ""
    password: str = ""

    @classmethod
    def anonymous(cls) -> "RegistryCredentials":
        return cls()

    def __repr__(self) -> str:
        return (
            f"RegistryCredentials(host={self.host!r}, address={self.address!r}, "
            f"username={self.username!r}, password='***')"
        )


@dataclass(frozen=True)
class PullContext:
    """What a resolution needs from a Container + PodSpec pair."""
    namespace: str
    secret_name: str
    image: str


def _field(obj: Any, attr: str, key: str) -> Any:
    # kubernetes.client models use snake_case attributes, admission
    # requests arrive as camelCase dicts
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, attr, None)


def build_pull_context(namespace: str, container: Any, pod_spec: Any) -> PullContext:
    """
    Collect image and first image pull secret. Later secrets are ignored.
    """
    image = _field(container, "image", "image") or ""
    secrets = _field(pod_spec, "image_pull_secrets", "imagePullSecrets") or []
    secret_name = ""
    if secrets:
        secret_name = _field(secrets[0], "name", "name") or ""
    return PullContext(namespace=namespace, secret_name=secret_name, image=image)


# =============================================================================
# Docker config parsing
# =============================================================================

def decode_docker_config(data: Optional[dict]) -> dict:
    """
    Decode the .dockerconfigjson entry of a Secret's data map.

    The Kubernetes client hands Secret data back base64 encoded.
    """
    if not data or DOCKER_CONFIG_JSON_KEY not in data:
        raise MalformedSecretError(f"Secret has no {DOCKER_CONFIG_JSON_KEY} key")

    try:
        raw = base64.b64decode(data[DOCKER_CONFIG_JSON_KEY], validate=True)
        docker_config = json.loads(raw)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise MalformedSecretError(f"Cannot decode {DOCKER_CONFIG_JSON_KEY}: {exc}") from exc

    if not isinstance(docker_config, dict):
        raise MalformedSecretError("Docker config is not a JSON object")
    auths = docker_config.get("auths")
    if not isinstance(auths, dict) or not auths:
        raise MalformedSecretError("Docker config has no 'auths' entries")
    return docker_config


def _split_auth_field(encoded: str) -> tuple[str, str]:
    """Decode the docker CLI 'auth' field (base64 of 'user:password')."""
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, TypeError) as exc:
        raise MalformedSecretError(f"Cannot decode 'auth' field: {exc}") from exc
    if ":" not in decoded:
        raise MalformedSecretError("'auth' field is not in user:password form")
    username, password = decoded.split(":", 1)
    return username, password


def select_registry(docker_config: dict) -> RegistryCredentials:
    """
    Pick one registry from 'auths'.

    The lexicographically smallest host wins, so the choice is stable across
    runs no matter how the JSON object was ordered.
    """
    auths = docker_config["auths"]
    host = sorted(auths)[0]
    entry = auths[host]
    if not isinstance(entry, dict):
        raise MalformedSecretError(f"Auth entry for {host!r} is not an object")

    username = entry.get("username") or ""
    password = entry.get("password") or ""
    if not username and not password and entry.get("auth"):
        username, password = _split_auth_field(entry["auth"])

    return RegistryCredentials(
        host=host,
        address=registry_address(host),
        username=username,
        password=password,
    )


# =============================================================================
# Secret lookup
# =============================================================================

def read_docker_secret(core_v1, namespace: str, secret_name: str) -> dict:
    """Return the data map of a Secret."""
    try:
        secret = core_v1.read_namespaced_secret(
            name=secret_name,
            namespace=namespace,
            _request_timeout=SECRET_READ_TIMEOUT,
        )
    except ApiException as exc:
        raise SecretNotFoundError(
            f"Cannot read imagePullSecret {namespace}/{secret_name}: {exc.status} {exc.reason}"
        ) from exc
    except Urllib3TimeoutError as exc:
        raise RegistryConnectionError(
            f"Timed out reading imagePullSecret {namespace}/{secret_name}"
        ) from exc
    except HTTPError as exc:
        # the client wraps a read timeout in MaxRetryError
        if isinstance(getattr(exc, "reason", None), Urllib3TimeoutError):
            raise RegistryConnectionError(
                f"Timed out reading imagePullSecret {namespace}/{secret_name}"
            ) from exc
        raise SecretNotFoundError(
            f"Cannot reach API server for imagePullSecret {namespace}/{secret_name}: {exc}"
        ) from exc
    return secret.data or {}


def resolve_credentials(
    core_v1,
    namespace: str,
    pull_secret_name: Optional[str],
    logger: Optional[logging.Logger] = None,
) -> RegistryCredentials:
    """
    Resolve registry credentials for a pull secret.

    Args:
        core_v1: kubernetes.client.CoreV1Api (or anything with read_namespaced_secret)
        namespace: Namespace of the pod
        pull_secret_name: First imagePullSecret of the pod, empty for none

    Returns:
        RegistryCredentials, anonymous when there is no pull secret

    Raises:
        SecretNotFoundError: Secret missing or not readable
        MalformedSecretError: Secret does not hold a usable docker config
    """
    logger = logger or log
    if not pull_secret_name:
        return RegistryCredentials.anonymous()

    data = read_docker_secret(core_v1, namespace, pull_secret_name)
    credentials = select_registry(decode_docker_config(data))
    logger.info(
        "Using registry %s from imagePullSecret %s/%s",
        credentials.host, namespace, pull_secret_name,
    )
    return credentials

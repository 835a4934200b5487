# resolver.py
# Entrypoint/Cmd resolution for a container whose pod spec leaves them unset

import logging
from typing import Any, Optional

from entryresolver.config import DEFAULT_REGISTRY_ADDRESS
from entryresolver.modules.finders import ContainerImageConfig, fetch_entrypoint_cmd
from entryresolver.modules.formatters import (
    normalize_repository,
    parse_image_ref,
    strip_registry_host,
)
from entryresolver.modules.pullsecrets import build_pull_context, resolve_credentials


log = logging.getLogger(__name__)


def load_core_v1():
    """
    CoreV1Api for the current cluster.

    Tries in-cluster config first, then falls back to local kubeconfig.
    urllib3 retries are disabled so a read is attempted exactly once.
    """
    from kubernetes import client, config  # type: ignore
    from kubernetes.config.config_exception import ConfigException  # type: ignore

    try:
        config.load_incluster_config()
    except ConfigException:
        config.load_kube_config()

    configuration = client.Configuration.get_default_copy()
    configuration.retries = 0
    return client.CoreV1Api(client.ApiClient(configuration))


def get_entrypoint_cmd(
    core_v1,
    namespace: str,
    container: Any,
    pod_spec: Any,
    logger: Optional[logging.Logger] = None,
) -> ContainerImageConfig:
    """
    Resolve the image Entrypoint and Cmd for one container of a pod.

    Args:
        core_v1: kubernetes.client.CoreV1Api used to read the pull secret
        namespace: Namespace of the pod
        container: V1Container or container dict from an admission request
        pod_spec: V1PodSpec or pod spec dict owning the container

    Returns:
        ContainerImageConfig of the container's image

    Raises:
        ResolutionError subclasses; nothing is retried.
    """
    logger = logger or log
    pull = build_pull_context(namespace, container, pod_spec)
    credentials = resolve_credentials(core_v1, pull.namespace, pull.secret_name, logger=logger)

    image = pull.image
    if credentials.host:
        image = strip_registry_host(image, credentials.host)
        logger.info("Trimmed registry name from image name: registry=%s image=%s", credentials.host, image)

    registry_address = credentials.address or DEFAULT_REGISTRY_ADDRESS
    logger.info("Using registry %s for image %s", registry_address, pull.image)

    ref = parse_image_ref(image)
    repository = normalize_repository(ref.repository, registry_address)

    return fetch_entrypoint_cmd(
        registry_address,
        credentials.username,
        credentials.password,
        repository,
        ref.tag,
        logger=logger,
    )

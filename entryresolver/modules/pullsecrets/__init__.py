from .pull_secrets import (
    DOCKER_CONFIG_JSON_KEY,
    RegistryCredentials,
    PullContext,
    build_pull_context,
    decode_docker_config,
    select_registry,
    read_docker_secret,
    resolve_credentials,
)

from .formatters import (
    ImageReference,
    parse_image_ref,
    strip_registry_host,
    registry_address,
    registry_base_url,
    is_dockerhub,
    normalize_repository,
)

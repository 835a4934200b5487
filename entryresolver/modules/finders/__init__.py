from .imageConfigResult import ContainerImageConfig
from .config_manifest import fetch_entrypoint_cmd, decode_image_config

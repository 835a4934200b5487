from .auth import RegistryAuth, parse_challenge, MANIFEST_MEDIA_TYPES

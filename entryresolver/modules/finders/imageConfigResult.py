from dataclasses import dataclass, field

# =============================================================================
# Data Classes for Resolved Image Config
# =============================================================================

@dataclass
class ContainerImageConfig:
    """Entrypoint and Cmd baked into an image config."""
    entrypoint: list[str] = field(default_factory=list)
    cmd: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "entrypoint": list(self.entrypoint),
            "cmd": list(self.cmd),
        }

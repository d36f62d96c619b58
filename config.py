"""Application configuration."""
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import grpc


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_metadata(value: str) -> Dict[str, str]:
    """Parse "key=value,key=value" into a dict."""
    metadata = {}
    for item in value.split(","):
        if not item.strip():
            continue
        if "=" not in item:
            raise ValueError(f"Invalid metadata entry (expected key=value): {item}")
        key, val = item.split("=", 1)
        metadata[key.strip().lower()] = val.strip()
    return metadata


@dataclass
class ReflectionConfig:
    """Reflection server connection settings."""

    target: str = "localhost:50051"
    timeout: float = 30.0
    insecure: bool = True
    root_certificates_path: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "ReflectionConfig":
        """Load config from environment variables."""
        return cls(
            target=os.getenv("REFLECTION_TARGET", "localhost:50051"),
            timeout=float(os.getenv("REFLECTION_TIMEOUT", "30")),
            insecure=_parse_bool(os.getenv("REFLECTION_INSECURE", "true")),
            root_certificates_path=os.getenv("REFLECTION_CA_CERT") or None,
            metadata=parse_metadata(os.getenv("REFLECTION_METADATA", "")),
        )

    def credentials(self) -> Optional[grpc.ChannelCredentials]:
        """Build channel credentials, None for a plaintext channel."""
        if self.insecure:
            return None

        root_certificates = None
        if self.root_certificates_path:
            with open(self.root_certificates_path, "rb") as f:
                root_certificates = f.read()
        return grpc.ssl_channel_credentials(root_certificates=root_certificates)

    def metadata_pairs(self) -> List[Tuple[str, str]]:
        """Metadata as grpc expects it."""
        return list(self.metadata.items())


@dataclass
class AppConfig:
    """Application configuration."""

    output_dir: str = "./output"
    reflection: ReflectionConfig = None

    def __post_init__(self):
        """Initialize default values."""
        if self.reflection is None:
            self.reflection = ReflectionConfig.from_env()

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load config from environment variables."""
        return cls(
            output_dir=os.getenv("REFLECTOR_OUTPUT_DIR", "./output"),
            reflection=ReflectionConfig.from_env(),
        )


# Global instance
app_config = AppConfig()

"""Configuration management for the gist terminal client."""

from pathlib import Path
from dataclasses import dataclass
import yaml

DEFAULT_API_URL = "http://127.0.0.1:8000/api"
DEFAULT_TIMEOUT_SECONDS = 30.0


def config_path() -> Path:
    return Path.home() / ".config" / "global-gist" / "config.yaml"


def default_storage_path() -> Path:
    return Path.home() / ".local" / "share" / "global-gist" / "library.json"


@dataclass
class Config:
    """Terminal client configuration."""

    storage_path: Path
    api_url: str = DEFAULT_API_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def load(cls) -> "Config":
        """Load config from ~/.config/global-gist/config.yaml or use defaults."""
        path = config_path()

        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
                return cls(
                    storage_path=Path(
                        data.get("storage_path", default_storage_path())
                    ).expanduser(),
                    api_url=str(data.get("api_url", DEFAULT_API_URL)),
                    timeout_seconds=float(data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
                )

        # Default config
        return cls(storage_path=default_storage_path())

    def save(self):
        """Save config to file."""
        path = config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump({
                "api_url": self.api_url,
                "storage_path": str(self.storage_path),
                "timeout_seconds": self.timeout_seconds,
            }, f)

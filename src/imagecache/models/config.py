"""Pydantic configuration models for imagecache."""

from pathlib import Path
from typing import Any, Literal, Optional

import platformdirs
from pydantic import BaseModel, Field

APP_NAME = "imagecache"
CACHE_SUBDIR = "images"


def default_cache_dir() -> Path:
    """Platform cache directory plus the images subfolder."""
    return Path(platformdirs.user_cache_dir(APP_NAME)) / CACHE_SUBDIR


class ByteSize(int):
    """
    Custom type that parses human-readable byte sizes.

    Accepts:
        - Integers (bytes)
        - Strings like '200kb', '1mb', '5gb'

    Examples:
        >>> ByteSize._parse('200kb')
        204800
        >>> ByteSize._parse('1mb')
        1048576
        >>> ByteSize._parse(1024)
        1024
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> Any:
        from pydantic_core import core_schema

        return core_schema.no_info_plain_validator_function(cls._parse)

    @classmethod
    def _parse(cls, v: Any) -> int:
        if isinstance(v, int) and not isinstance(v, bool):
            return v
        if isinstance(v, str):
            v = v.lower().strip()
            # Order matters: check longer suffixes first
            units = [("gb", 1024**3), ("mb", 1024**2), ("kb", 1024), ("b", 1)]
            for unit, mult in units:
                if v.endswith(unit):
                    num_str = v[: -len(unit)].strip()
                    try:
                        return int(float(num_str) * mult)
                    except ValueError as err:
                        raise ValueError(f"Invalid number in byte size: {v}") from err
            try:
                return int(v)
            except ValueError:
                pass
        raise ValueError(f"Invalid byte size: {v}. Use format like '200kb', '1mb', or integer bytes.")


class NetworkConfig(BaseModel):
    """Configuration for the HTTP fetcher."""

    proxy: Optional[str] = Field(None, description="HTTP/HTTPS proxy URL")
    user_agent: Optional[str] = Field(None, description="Custom User-Agent header")
    timeout: Optional[float] = Field(
        None,
        gt=0,
        description="Total request timeout in seconds (None = wait indefinitely)",
    )
    max_retries: int = Field(0, ge=0, description="Retry attempts for transient failures")
    retry_base_delay: float = Field(1.0, ge=0, description="Base delay for exponential backoff")
    max_content_size: Optional[ByteSize] = Field(
        None,
        description="Maximum size of a single resource (e.g., '10mb')",
    )

    model_config = {"extra": "forbid"}


class ImageCacheConfig(BaseModel):
    """
    Root configuration model for imagecache.

    Example:
        config = ImageCacheConfig(
            cache_dir=Path("./cache"),
            expiry_seconds=3600,
            network=NetworkConfig(timeout=30),
        )

    YAML format:
        cache_dir: ./cache
        expiry_seconds: 3600
        network:
          timeout: 30
    """

    cache_dir: Path = Field(
        default_factory=default_cache_dir,
        description="Directory holding cached resources",
    )
    expiry_seconds: Optional[float] = Field(
        None,
        gt=0,
        description="Re-fetch resources older than this many seconds (None = never)",
    )
    network: NetworkConfig = Field(default_factory=NetworkConfig)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ImageCacheConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "ImageCacheConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text())

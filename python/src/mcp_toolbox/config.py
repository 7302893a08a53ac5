"""Server configuration.

Settings come from an optional JSON file and are overridden by CLI options
(which in turn read ``MCP_TOOLBOX_*`` environment variables).

Config JSON: { "transport": "http"|"stdio", "host", "port", "workspace", "server_name" }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from mcp_toolbox import __version__

logger = logging.getLogger(__name__)

TransportName = Literal["http", "stdio"]


class ServerConfig(BaseModel):
    """Startup settings for a tool server."""

    transport: TransportName = Field(
        default="http", description="Binding selected at startup (http or stdio)"
    )
    host: str = Field(default="127.0.0.1", description="Bind address for http")
    port: int = Field(default=8080, ge=0, le=65535, description="Bind port for http")
    workspace: Optional[str] = Field(
        default=None, description="Directory for the file tools"
    )
    server_name: str = Field(default="mcp-toolbox")
    server_version: str = Field(default=__version__)

    def with_overrides(self, **overrides: Any) -> "ServerConfig":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return self
        return self.model_validate({**self.model_dump(), **values})


def load_config(path: str | Path) -> ServerConfig:
    """Load a server config file.

    Raises:
        IOError: If the file cannot be read
        ValueError: If the file is not valid JSON or has invalid settings
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (IOError, OSError) as e:
        raise IOError(f"Failed to read config from {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config {path} must contain a JSON object")
    try:
        config = ServerConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid config in {path}: {e}") from e
    logger.debug("Loaded config from %s: %s", path, config)
    return config


__all__ = ["ServerConfig", "TransportName", "load_config"]

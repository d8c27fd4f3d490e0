"""
=============================================================================
HTTP CONFIGURATION
=============================================================================

The "http" section of the host configuration, parsed into a dataclass:

    http:
      port: 8080                 # primary listener (0 = OS picks a port)
      bind: "0.0.0.0"            # see core.bind.resolve_bind
      servers:                   # additional listeners, bound after primary
        - {port: 8081, bind: "127.0.0.1"}
        - {port: 8443, protocol: https}
      api:
        parser:
          json: {limit: "1mb"}
      socket: {}
      access_log: true

Validation is split in two:

    validate()       fail-fast checks at up time (timeouts, sizes, ranges)
    ServerEntry      per-entry checks at start time; a bad entry is
                     skipped with a warning instead of aborting the boot
=============================================================================
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional


PROTOCOLS = ("http", "https")


def coerce_port(value: Any) -> Optional[int]:
    """
    Numeric coercion for port values.

        coerce_port(8080)     -> 8080
        coerce_port("8080")   -> 8080
        coerce_port(0)        -> 0
        coerce_port(True)     -> None
        coerce_port("http")   -> None
        coerce_port(None)     -> None
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
    return None


def _valid_port(port: int) -> bool:
    return 0 <= port < 65536


@dataclass
class ServerEntry:
    """One additional listener from http.servers."""

    port: int
    bind: Any = None
    protocol: str = "http"

    @classmethod
    def from_value(cls, value: Any) -> Optional["ServerEntry"]:
        """
        Build an entry, or None when value cannot describe a listener.

        Additional servers need a truthy numeric port: port 0 is only
        accepted for the primary listener.
        """
        if not isinstance(value, Mapping):
            return None
        port = coerce_port(value.get("port"))
        if not port or not _valid_port(port):
            return None
        protocol = str(value.get("protocol") or "http").lower()
        return cls(port=port, bind=value.get("bind"), protocol=protocol)


@dataclass
class HTTPConfig:
    """
    Parsed "http" config section.

    port and bind are kept as given; the listener manager coerces and
    resolves them. servers is kept raw so start() can warn about each
    invalid entry it skips.
    """

    # Listeners
    port: Any = None
    bind: Any = None
    servers: List[Any] = field(default_factory=list)
    backlog: int = 128

    # Protocol
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    timeout: float = 30.0
    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    server_name: str = "kubik-http"

    # Access log
    access_log: bool = False
    access_log_format: str = "text"

    # Sub-sections read by the API and socket components
    api: Dict[str, Any] = field(default_factory=dict)
    socket: Dict[str, Any] = field(default_factory=dict)

    # Keys this dataclass does not know, kept for extensions
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, section: Any) -> "HTTPConfig":
        """
        Build from the raw config section.

        Raises:
            ValueError: If section is not a mapping.
        """
        if isinstance(section, HTTPConfig):
            return section
        if not isinstance(section, Mapping):
            raise ValueError(f"http config must be a mapping, got {type(section).__name__}")

        known = {f.name for f in fields(cls)} - {"extra"}
        values = {key: section[key] for key in section if key in known}
        extra = {key: section[key] for key in section if key not in known}

        if values.get("servers") is None:
            values["servers"] = []
        for key in ("api", "socket"):
            if values.get(key) is None:
                values[key] = {}

        return cls(**values, extra=extra)

    @property
    def primary_port(self) -> Optional[int]:
        return coerce_port(self.port)

    def validate(self) -> None:
        """
        Check values that would otherwise fail at first use.

        Raises:
            ValueError: Describing the first invalid value.
        """
        primary = self.primary_port
        if primary is not None and not _valid_port(primary):
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not isinstance(self.servers, (list, tuple)):
            raise ValueError("servers must be a list")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")

        if self.access_log_format not in ("text", "json"):
            raise ValueError(f"Unknown access_log_format: {self.access_log_format}")

        if not isinstance(self.api, Mapping) or not isinstance(self.socket, Mapping):
            raise ValueError("api and socket sections must be mappings")

"""
=============================================================================
BUILT-IN KUBIKS: CONFIG AND LOG
=============================================================================

The two kubiks the HTTP kubik depends on.

    ConfigComponent   name "config"   get(section) -> dict or None
    LogComponent      name "log"      stdlib logger with a setup() helper

Both are thin. An application with its own configuration or
logging layer can register replacements under the same names, as long as
they offer get() and debug/info/warning/error/exception().
=============================================================================
"""

from typing import Any, Dict, Optional
import logging

from .component import Component


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ConfigComponent(Component):
    """
    Configuration sections by name.

        config = ConfigComponent({"http": {"port": 8080}})
        config.get("http")     # {"port": 8080}
        config.get("db")       # None
    """

    name = "config"

    def __init__(self, configs: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.configs: Dict[str, Any] = dict(configs or {})

    def get(self, name: str) -> Any:
        return self.configs.get(name)


class LogComponent(Component):
    """
    Operational logging for kubiks.

    Messages go to a stdlib logger (default "kubikhttp"); setup() installs
    the console format used by the CLI.
    """

    name = "log"

    def __init__(self, level: str = "INFO", name: str = "kubikhttp"):
        super().__init__()
        self.level = level
        self.logger = logging.getLogger(name)

    def setup(self) -> None:
        """Configure the root logger and this kubik's logger level."""
        level = getattr(logging, str(self.level).upper(), logging.INFO)
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        self.logger.setLevel(level)

    def debug(self, message: str, *args: Any) -> None:
        self.logger.debug(message, *args)

    def info(self, message: str, *args: Any) -> None:
        self.logger.info(message, *args)

    def warning(self, message: str, *args: Any) -> None:
        self.logger.warning(message, *args)

    warn = warning

    def error(self, message: str, *args: Any) -> None:
        self.logger.error(message, *args)

    def exception(self, message: str, *args: Any) -> None:
        self.logger.exception(message, *args)

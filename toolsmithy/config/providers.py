"""Configuration providers: the abstract interface and a JSON file backend."""

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from toolsmithy.config.schema import ConfigValidationError, deep_merge, validate_config
from toolsmithy.utils.logger import get_logger

logger = get_logger("config.providers")

ConfigCallback = Callable[[dict[str, Any]], None]


class ConfigProvider(ABC):
    """Where configuration comes from and how changes are announced."""

    @abstractmethod
    async def load(self) -> dict[str, Any]:
        """Return the full configuration."""

    @abstractmethod
    async def save(self, config: dict[str, Any]) -> None:
        """Persist the full configuration."""

    @abstractmethod
    async def watch(self, callback: ConfigCallback) -> None:
        """Call ``callback`` with the new configuration after each change."""

    @abstractmethod
    async def stop_watching(self) -> None:
        """Stop change notifications."""


class _ConfigFileHandler(FileSystemEventHandler):
    """Forwards watchdog events for one file to the provider's event loop.

    Runs on the observer thread, so it only filters and schedules.
    """

    def __init__(self, provider: "LocalFileConfigProvider", loop: asyncio.AbstractEventLoop):
        self.provider = provider
        self.loop = loop
        self.target = provider.config_path.resolve()

    def _maybe_reload(self, path: str | bytes) -> None:
        if Path(str(path)).resolve() != self.target:
            return
        if not self.provider._file_changed():
            return
        logger.debug("Config file changed, reloading", path=str(self.target))
        if not self.loop.is_closed():
            asyncio.run_coroutine_threadsafe(self.provider._handle_file_change(), self.loop)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._maybe_reload(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._maybe_reload(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors that save via rename-over land here
        if not event.is_directory:
            self._maybe_reload(event.dest_path)


class LocalFileConfigProvider(ConfigProvider):
    """JSON file merged over ``defaults``, validated on every load and save.

    A file that cannot be read or parsed falls back to the last valid
    configuration (or the defaults); a file that parses but fails validation
    raises ``ConfigValidationError``.
    """

    def __init__(
        self,
        config_path: Path,
        defaults: dict[str, Any] | None = None,
        *,
        create_if_missing: bool = True,
    ):
        self.config_path = config_path
        self.defaults = defaults or {}
        self.create_if_missing = create_if_missing
        self._observer: Any = None
        self._callback: ConfigCallback | None = None
        self._last_mtime: float | None = None
        self._last_valid_config: dict[str, Any] | None = None

    def _file_changed(self) -> bool:
        try:
            return self.config_path.stat().st_mtime != self._last_mtime
        except FileNotFoundError:
            return False

    def _remember(self, config: dict[str, Any]) -> None:
        self._last_mtime = self.config_path.stat().st_mtime
        self._last_valid_config = config.copy()

    def _fallback(self, reason: str) -> dict[str, Any]:
        if self._last_valid_config is not None:
            logger.warning(
                "Keeping last valid configuration",
                reason=reason,
                path=str(self.config_path),
            )
            return self._last_valid_config.copy()
        logger.warning(
            "No previous valid config, using defaults",
            reason=reason,
            path=str(self.config_path),
        )
        return self.defaults.copy()

    def _read_file(self) -> dict[str, Any] | None:
        """Parse the file; None when it cannot be read or is not JSON."""
        try:
            config = json.loads(self.config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error(
                "Invalid JSON syntax in config file",
                error=str(e),
                line=e.lineno,
                column=e.colno,
                path=str(self.config_path),
            )
            return None
        except OSError as e:
            logger.error("Failed to read config", error=str(e), path=str(self.config_path))
            return None
        if not isinstance(config, dict):
            raise ConfigValidationError(["Config file must contain a JSON object"])
        return config

    async def load(self) -> dict[str, Any]:
        if not self.config_path.exists():
            if self.create_if_missing:
                logger.info("Creating config file with defaults", path=str(self.config_path))
                await self.save({})
            else:
                self._last_valid_config = self.defaults.copy()
            return self.defaults.copy()

        config = self._read_file()
        if config is None:
            return self._fallback("unreadable file")

        merged = deep_merge(self.defaults, config)
        try:
            validate_config(merged)
        except ConfigValidationError as exc:
            logger.error("Invalid configuration", error=str(exc), path=str(self.config_path))
            raise

        self._remember(merged)
        logger.debug("Config loaded from file", path=str(self.config_path))
        return merged

    async def save(self, config: dict[str, Any]) -> None:
        """Validate, then write through a temp file and rename."""
        merged = deep_merge(self.defaults, config)
        validate_config(merged)

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.config_path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(merged, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(self.config_path)

        self._remember(merged)
        logger.debug("Config saved to file", path=str(self.config_path))

    async def watch(self, callback: ConfigCallback) -> None:
        self._callback = callback
        # Watch the directory; per-file watches miss rename-over saves
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        handler = _ConfigFileHandler(self, asyncio.get_running_loop())
        self._observer = Observer()
        self._observer.schedule(handler, str(self.config_path.parent), recursive=False)
        self._observer.start()
        logger.info("Started watching config file", path=str(self.config_path))

    async def _handle_file_change(self) -> None:
        try:
            new_config = await self.load()
        except ConfigValidationError as e:
            logger.error("Ignoring invalid config change", error=str(e))
            return
        if self._callback:
            self._callback(new_config)

    async def stop_watching(self) -> None:
        if not self._observer:
            return
        observer, self._observer = self._observer, None
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(loop.run_in_executor(None, observer.stop), timeout=2.0)
            await asyncio.wait_for(
                loop.run_in_executor(None, lambda: observer.join(timeout=1.0)),
                timeout=2.0,
            )
            logger.info("Stopped watching config file")
        except TimeoutError:
            logger.debug("Observer stop timed out", path=str(self.config_path))

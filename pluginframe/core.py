"""The plugin framework core: configuration, plugin collection and invocation."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Callable

from .config import ConfigModel
from .fileops import files_differ, is_plugin_library
from .plugin import InfoType, OutputInfo, Plugin, PluginType, RunMode
from .registry import Loader, PluginRegistry

__all__ = [
    "CoreError",
    "PluginNotFoundError",
    "FunctionNotFoundError",
    "Core",
    "InitThread",
    "SYSTEM_VERSION",
    "ORGANIZATION_NAME",
]

SYSTEM_VERSION = "1.0.0.6"
ORGANIZATION_NAME = "pluginframe"

Subscriber = Callable[[OutputInfo], Any]


class CoreError(Exception):
    """Raised when the core fails to initialise."""


class PluginNotFoundError(LookupError):
    """Raised when no selected plugin matches the requested identity."""


class FunctionNotFoundError(LookupError):
    """Raised when a matching plugin exposes no function of the requested name."""


def _config_path(directory: str, file_name: str) -> str:
    if not directory and not file_name:
        return ""
    if directory.endswith("/"):
        return directory + file_name
    return directory + "/" + file_name


class Core:
    """Owns the configuration and the plugin registry, and relays notifications."""

    def __init__(
        self,
        run_mode: RunMode = RunMode.CORE_APPLICATION,
        application_dir: str = "",
        system_plugin_dir: str = "",
        non_system_plugin_dir: str = "",
        config_dir: str = "",
        config_file_name: str = "",
        *,
        loader: Loader | None = None,
        is_library: Callable[[Path], bool] = is_plugin_library,
    ) -> None:
        self.run_mode = run_mode
        self.system_version = SYSTEM_VERSION
        self.organization_name = ORGANIZATION_NAME
        self.application_dir = application_dir
        self.system_plugin_dir = system_plugin_dir
        self.non_system_plugin_dir = non_system_plugin_dir
        self.config_dir = config_dir
        self.config_file_name = config_file_name
        self.config_path = _config_path(config_dir, config_file_name)
        self.config = ConfigModel()
        self._subscribers: list[Subscriber] = []
        self.registry = PluginRegistry(
            loader,
            core=self,
            notify=self.emit,
            is_library=is_library,
            run_mode=run_mode,
        )

        try:
            self.load_config(self.config)
        except FileNotFoundError:
            pass
        self.system_name = self.config.system_name
        self.system_id = self.config.system_id

    # -- plugin collections -------------------------------------------------

    @property
    def system_plugins(self) -> list[Plugin]:
        return self.registry.system_plugins

    @property
    def non_system_plugins(self) -> list[Plugin]:
        return self.registry.non_system_plugins

    @property
    def system_selected(self) -> list[Plugin]:
        return self.registry.system_selected

    @property
    def non_system_selected(self) -> list[Plugin]:
        return self.registry.non_system_selected

    @property
    def clone_plugins(self) -> list[Plugin]:
        return self.registry.clone_plugins

    @property
    def valid_plugins(self) -> list[Plugin]:
        return self.registry.valid_plugins

    # -- notifications ------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a receiver of notifications; returns a function that removes it."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, info: OutputInfo) -> None:
        """Deliver a notification to every subscriber."""
        for callback in list(self._subscribers):
            callback(info)

    def _status(self, content: str) -> None:
        self.emit(OutputInfo(InfoType.STATUS, content))

    def handle_info(self, info: OutputInfo) -> None:
        """Handle a notification sent to the core by a plugin or view."""
        if info.type is InfoType.PLUGIN_COLLECT:
            self.collect_plugins()
        else:
            self.emit(info)

    # -- configuration ------------------------------------------------------

    def load_config(self, config: ConfigModel) -> None:
        """Fill ``config`` from the core config file.

        ``config`` is reset first; raises FileNotFoundError when the file is missing.
        """
        config.reset()
        self._status("Trying to read the core config file.")
        if not self.config_path or not os.path.isfile(self.config_path):
            self._status("The core config file lost!")
            raise FileNotFoundError(f"core config file not found: {self.config_path!r}")
        config.copy_from(ConfigModel.load(self.config_path))

    def _require_config_file(self) -> None:
        if not self.config_path or not os.path.isfile(self.config_path):
            raise FileNotFoundError(f"core config file not found: {self.config_path!r}")

    def _write_config(self, path: str) -> str:
        if not path.endswith(".dat"):
            path += ".dat"
        self.config.save(path)
        return path

    def _write_temp_config(self) -> str:
        return self._write_config(_config_path(self.config_dir, "temp_" + self.config_file_name))

    def save_config(self) -> bool:
        """Store the in-memory config when it differs from the file; then reload and install it.

        Returns whether the file was rewritten.
        """
        self._status("Saving the core config file.")
        self._require_config_file()
        temp_path = self._write_temp_config()
        changed = files_differ(temp_path, self.config_path)
        if changed:
            self._write_config(self.config_path)
            self.emit(OutputInfo(InfoType.CORE_CONFIG_CHANGED))
        self.load_config(self.config)
        self.install_config(self.config)
        return changed

    def apply_config(self) -> bool:
        """Install the in-memory config if it differs from the file; return whether it did."""
        self._status("Applying the core config file.")
        self._require_config_file()
        temp_path = self._write_temp_config()
        if files_differ(temp_path, self.config_path):
            self.install_config(self.config)
            return True
        return False

    def cancel_config(self) -> bool:
        """Discard in-memory changes by reloading and installing the file's config.

        Returns whether there was anything to discard.
        """
        self._status("Recovering the core config file.")
        self._require_config_file()
        temp_path = self._write_temp_config()
        if files_differ(temp_path, self.config_path):
            self.config.reset()
            self.load_config(self.config)
            self.install_config(self.config)
            return True
        return False

    # -- plugins ------------------------------------------------------------

    def collect_plugins(self) -> None:
        """Collect plugins from the system and non-system directories.

        Raises FileNotFoundError when a plugin directory is missing.
        """
        self.registry.collect(self.system_plugin_dir, self.non_system_plugin_dir, self.config)

    def install_config(self, config: ConfigModel) -> None:
        """Apply ``config`` to the collected plugins."""
        self.registry.install_config(config)

    def initialize(self) -> None:
        """Load the config, collect and install plugins, then start them.

        Raises CoreError when a plugin fails while being started.
        """
        try:
            self.config.reset()
            try:
                self.load_config(self.config)
            except FileNotFoundError:
                pass
            try:
                self.collect_plugins()
            except FileNotFoundError:
                pass
            self.install_config(self.config)

            for plugin in (*self.system_selected, *self.valid_plugins):
                self.subscribe(plugin.receive_info)

            for plugin in (*self.system_plugins, *self.valid_plugins):
                plugin.on_core_initialize()
        except Exception as exc:
            self.emit(OutputInfo(InfoType.MESSAGE, "Core Initialize failed!"))
            raise CoreError("core initialisation failed") from exc

    @staticmethod
    def _call_functions(plugins: list[Plugin], function_name: str, arg_in: Any) -> Any:
        if not plugins:
            raise PluginNotFoundError("no matching plugin")
        found = False
        result = None
        for plugin in plugins:
            for function in plugin.functions:
                if function.name == function_name:
                    found = True
                    result = function(plugin, arg_in)
        if not found:
            raise FunctionNotFoundError(f"no plugin function named {function_name!r}")
        return result

    def invoke(
        self, plugin_type: PluginType, plugin_id: str, function_name: str, arg_in: Any = None
    ) -> Any:
        """Call a function of a selected original plugin; returns the last result."""
        pool = self.system_selected if plugin_type is PluginType.SYSTEM else self.non_system_selected
        matches = [p for p in pool if p.plugin_id == plugin_id]
        if not matches:
            raise PluginNotFoundError(f"no selected plugin {plugin_id!r}")
        return self._call_functions(matches, function_name, arg_in)

    def invoke_copy(
        self,
        plugin_type: PluginType,
        plugin_id: str,
        copy_id: str,
        function_name: str,
        arg_in: Any = None,
    ) -> Any:
        """Call a function of a plugin in the run order, chosen by id and copy id."""
        pool = self.system_selected if plugin_type is PluginType.SYSTEM else self.valid_plugins
        matches = [p for p in pool if p.plugin_id == plugin_id and p.copy_id == copy_id]
        if not matches:
            raise PluginNotFoundError(f"no plugin {plugin_id!r} with copy id {copy_id!r}")
        return self._call_functions(matches, function_name, arg_in)


class InitThread(threading.Thread):
    """Runs :meth:`Core.initialize` in a background thread."""

    def __init__(self, core: Core, name: str | None = None) -> None:
        super().__init__(name=name)
        self.core = core
        self.error: BaseException | None = None

    def run(self) -> None:
        try:
            self.core.initialize()
        except Exception as exc:
            self.error = exc
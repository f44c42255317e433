"""Discovery of plugin files and installation of the configured plugin set."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable

from .config import ConfigModel, PluginInfo
from .fileops import is_plugin_library
from .plugin import InfoType, OutputInfo, Plugin, PluginType, RunMode

__all__ = ["PluginLoadError", "PluginRegistry"]

Loader = Callable[[Path], Any]


class PluginLoadError(Exception):
    """Raised when a plugin file cannot be loaded or connected to the core."""


def _no_loader(path: Path) -> Any:
    raise PluginLoadError(f"no plugin loader configured for {path}")


class PluginRegistry:
    """Holds the collected plugins and the selection installed from a config.

    ``loader`` turns a plugin file path into a plugin object; anything that is
    not a :class:`Plugin` is ignored. ``notify`` receives status notifications.
    """

    def __init__(
        self,
        loader: Loader | None = None,
        *,
        core: Any = None,
        notify: Callable[[OutputInfo], Any] | None = None,
        is_library: Callable[[Path], bool] = is_plugin_library,
        run_mode: RunMode = RunMode.CORE_APPLICATION,
    ) -> None:
        self.loader: Loader = loader if loader is not None else _no_loader
        self.core = core
        self.notify = notify
        self.is_library = is_library
        self.run_mode = run_mode
        self.system_plugins: list[Plugin] = []
        self.non_system_plugins: list[Plugin] = []
        self.system_selected: list[Plugin] = []
        self.non_system_selected: list[Plugin] = []
        self.clone_plugins: list[Plugin] = []
        self.valid_plugins: list[Plugin] = []

    def _emit(self, content: str = "", info_type: InfoType = InfoType.STATUS) -> None:
        if self.notify is not None:
            self.notify(OutputInfo(info_type, content))

    def _originals(self, plugin_type: PluginType) -> list[Plugin]:
        if plugin_type is PluginType.SYSTEM:
            return self.system_plugins
        return self.non_system_plugins

    def _has_instance(self, path: Path, plugin_type: PluginType) -> bool:
        file_path = str(path.absolute())
        return any(p.file_path == file_path for p in self._originals(plugin_type))

    def instantiate(self, path: str | os.PathLike, plugin_type: PluginType) -> Plugin | None:
        """Load one plugin file and register it among the originals of its type.

        Returns the loaded plugin, or None when the file is not a plugin
        library, yields no plugin, or repeats an already collected plugin id.
        Raises :class:`PluginLoadError` when loading or connecting fails.
        """
        path = Path(path)
        if not self.is_library(path):
            return None
        file_path = str(path.absolute())
        base_name = path.name.split(".", 1)[0]

        try:
            instance = self.loader(Path(file_path))
        except Exception as exc:
            self._emit(f'There is a Error when loading plugin "{base_name}"')
            raise PluginLoadError(f"cannot load plugin {base_name!r}: {exc}") from exc

        if not isinstance(instance, Plugin):
            return None

        originals = self._originals(plugin_type)
        if any(p.plugin_id == instance.plugin_id for p in originals):
            kind = "system" if plugin_type is PluginType.SYSTEM else "non-system"
            self._emit(f'There is a same pluginID in {kind} module:"{file_path}"')
            return None

        instance.file_path = file_path
        target = self.core if self.core is not None else self
        try:
            connected = instance.connect_core(target)
        except Exception as exc:
            self._emit(f'There is a exception when connecting plugin:"{base_name}"')
            raise PluginLoadError(f"cannot connect plugin {base_name!r}: {exc}") from exc
        if not connected:
            raise PluginLoadError(f"plugin {base_name!r} refused to connect to the core")

        if instance.plugin_type is plugin_type:
            originals.append(instance)

        if plugin_type is PluginType.SYSTEM:
            self._emit(f"Collecting system plugin:{instance.plugin_id}")
        else:
            self._emit(f"Collecting non-system plugin:{instance.plugin_id}")
        return instance

    def _try_instantiate(self, path: Path, plugin_type: PluginType) -> None:
        try:
            self.instantiate(path, plugin_type)
        except PluginLoadError:
            pass

    def collect_directory(
        self,
        directory: str | os.PathLike,
        selected: list[PluginInfo],
        plugin_type: PluginType,
    ) -> None:
        """Load the plugins of one directory: selected files first, then the rest.

        Raises FileNotFoundError when the directory does not exist.
        """
        root = Path(directory)
        if not root.is_dir():
            self._emit(f'Can not find the plugin dir path "{os.fspath(directory)}"')
            raise FileNotFoundError(f"plugin directory not found: {os.fspath(directory)}")

        temp_dir = root / "Temp"
        if temp_dir.is_dir():
            for entry in temp_dir.iterdir():
                if entry.is_file():
                    entry.unlink()

        files = sorted(entry for entry in root.iterdir() if entry.is_file())
        by_name = {entry.name: entry for entry in files}

        for info in selected:
            entry = by_name.get(info.file_name)
            if entry is None:
                self._emit(
                    f'Can not find the file "{info.file_name}", '
                    f'from dir path "{os.fspath(directory)}"'
                )
                continue
            if not self._has_instance(entry, plugin_type):
                self._try_instantiate(entry, plugin_type)

        selected_names = {info.file_name for info in selected}
        for entry in files:
            if entry.name in selected_names:
                continue
            if not self._has_instance(entry, plugin_type):
                self._try_instantiate(entry, plugin_type)

    def collect(
        self,
        system_dir: str | os.PathLike,
        non_system_dir: str | os.PathLike,
        config: ConfigModel,
    ) -> None:
        """Collect system then non-system plugins and announce completion.

        A missing directory raises FileNotFoundError and stops the collection.
        """
        self.collect_directory(system_dir, config.system_plugins, PluginType.SYSTEM)
        self.collect_directory(non_system_dir, config.non_system_plugins, PluginType.NON_SYSTEM)
        self._emit(info_type=InfoType.PLUGIN_COLLECT_FINISHED)

    @staticmethod
    def _select(
        wanted: list[PluginInfo], originals: list[Plugin], chosen: list[Plugin]
    ) -> list[str]:
        missing = []
        chosen.clear()
        for info in wanted:
            plugin = next((p for p in originals if p.plugin_id == info.plugin_id), None)
            if plugin is None:
                missing.append(info.plugin_id)
                continue
            if not any(p.plugin_id == info.plugin_id for p in chosen):
                plugin.is_enable = True
                chosen.append(plugin)
        return missing

    def install_config(self, config: ConfigModel) -> None:
        """Apply a configuration: selections, clones and the run order."""
        self._emit("Loading selected system plugins.")
        for plugin_id in self._select(
            config.system_plugins, self.system_plugins, self.system_selected
        ):
            self._emit(
                f"Can't find the plugin which plugin id = {plugin_id},"
                "when loading the selected system plugins."
            )

        self._emit("Loading selected non-system plugins.")
        for plugin_id in self._select(
            config.non_system_plugins, self.non_system_plugins, self.non_system_selected
        ):
            self._emit(
                f"Can't find the plugin which plugin id={plugin_id},"
                "when loading the selected non-system plugins."
            )

        self._emit("Uninstalling clone plugins.")
        wanted_clones = {(c.original_id, c.copy_id) for c in config.clone_plugins}
        self.clone_plugins = [
            p for p in self.clone_plugins if (p.plugin_id, p.copy_id) in wanted_clones
        ]

        self._emit("Installing clone plugins.")
        for clone_info in config.clone_plugins:
            if any(
                p.plugin_id == clone_info.original_id and p.copy_id == clone_info.copy_id
                for p in self.clone_plugins
            ):
                continue
            original = next(
                (p for p in self.non_system_selected if p.plugin_id == clone_info.original_id),
                None,
            )
            if original is None:
                self._emit(
                    f"Can't find the original plugin which id={clone_info.original_id} "
                    "from selected non-system collection, on installing the clone plugins."
                )
                continue
            duplicate = original.clone(
                clone_info.copy_id, clone_info.alias_name, clone_info.comment
            )
            if duplicate is not None:
                self.clone_plugins.append(duplicate)

        self.valid_plugins.clear()
        self._emit("Install the operation sequence.")
        for item in config.valid_plugins:
            pool = self.clone_plugins if item.is_copy else self.non_system_selected
            plugin = next(
                (
                    p
                    for p in pool
                    if p.plugin_id == item.original_id and p.copy_id == item.copy_id
                ),
                None,
            )
            if plugin is not None:
                self.valid_plugins.append(plugin)
            elif item.is_copy:
                self._emit(
                    f"Can't find the original plugin which id={item.original_id} "
                    f"copyid={item.copy_id} from clone plugin collection, "
                    "on installing the operation sequence."
                )
            else:
                self._emit(
                    f"Can't find the original plugin which id={item.original_id} "
                    "from selected non-system collection, on installing the operation sequence."
                )
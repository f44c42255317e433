"""Console host: inspect the core, list plugins and run plugin functions."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Callable, TextIO

from .core import Core
from .fileops import is_plugin_library
from .plugin import InfoType, OutputInfo, PluginType, RunMode
from .registry import Loader

__all__ = ["Controller", "main"]

CONFIG_FILE_NAME = "CoreConfig.dat"


def _default_application_dir() -> str:
    return os.path.dirname(os.path.abspath(sys.argv[0] or "."))


class Controller:
    """Drives a console-mode core and reports what it finds."""

    def __init__(
        self,
        application_dir: str | os.PathLike | None = None,
        *,
        loader: Loader | None = None,
        is_library: Callable[[Path], bool] = is_plugin_library,
        stream: TextIO | None = None,
    ) -> None:
        app_dir = os.fspath(application_dir) if application_dir is not None else _default_application_dir()
        self.stream = stream
        self.core = Core(
            RunMode.CORE_APPLICATION,
            app_dir,
            app_dir + "/Bin/Plugins/",
            app_dir + "/Plugins/",
            app_dir + "/Config/Core/",
            CONFIG_FILE_NAME,
            loader=loader,
            is_library=is_library,
        )
        self.core.subscribe(self._on_info)

    def _write(self, *parts: Any) -> None:
        print(*parts, file=self.stream if self.stream is not None else sys.stderr)

    def _on_info(self, info: OutputInfo) -> None:
        if info.type is InfoType.STATUS:
            self._write(info.content)

    def core_info(self) -> tuple[str, str, str, str]:
        """Return and print the system name, id, version and organisation."""
        info = (
            self.core.system_name,
            self.core.system_id,
            self.core.system_version,
            self.core.organization_name,
        )
        self._write("[Core information]:", *info)
        return info

    def collect_plugins(self) -> None:
        """Initialise the core, collecting and installing its plugins."""
        self.core.initialize()

    def plugin_ids(self) -> tuple[list[str], list[str]]:
        """Collect plugins and return (and print) system and non-system plugin ids."""
        self.collect_plugins()
        system_ids = [p.plugin_id for p in self.core.system_plugins]
        non_system_ids = [p.plugin_id for p in self.core.non_system_plugins]

        self._write("")
        self._write("[-----System Plugins-----]:")
        for plugin_id in system_ids:
            self._write(plugin_id)
        self._write("")
        self._write("[-----Non-System Plugins-----]:")
        for plugin_id in non_system_ids:
            self._write(plugin_id)
        return system_ids, non_system_ids

    def function_list(self, plugin_id: str) -> list[tuple[str, str]]:
        """Return (and print) the functions of a non-system plugin as (name, detail)."""
        self.collect_plugins()
        self._write("")
        plugin = next(
            (p for p in self.core.non_system_plugins if p.plugin_id == plugin_id), None
        )
        if plugin is None:
            return []
        functions = [(f.name, f.detail) for f in plugin.functions]
        for name, detail in functions:
            self._write("[Function]:", name, " [Detail]:", detail)
        return functions

    def perform_function(self, plugin_id: str, copy_id: str, function_name: str) -> Any:
        """Run a function of a plugin in the run order and return its result.

        Raises PluginNotFoundError or FunctionNotFoundError when nothing matches.
        """
        self.collect_plugins()
        self._write("")
        return self.core.invoke_copy(PluginType.NON_SYSTEM, plugin_id, copy_id, function_name)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pluginframe-console", add_help=False)
    parser.add_argument("--PSysInfo", dest="sys_info", action="store_true", help="get system info")
    parser.add_argument(
        "--PLst", dest="plugin_list", action="store_true", help="get plugins form plugin dir"
    )
    parser.add_argument(
        "--PFLst",
        dest="function_list",
        metavar="Plugin ID",
        help="get the function list of plugin.",
    )
    parser.add_argument(
        "--PFunc",
        dest="function",
        action="append",
        metavar="Plugin ID, Copy ID, Function Name",
        help="Run the function from plugin function list.",
    )
    parser.add_argument(
        "--app-dir",
        dest="app_dir",
        default=None,
        help="application directory holding Bin/Plugins, Plugins and Config",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the console host with the given command-line arguments."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    print("Welcome to pluginframe, a plugin framework.\n")

    controller = Controller(args.app_dir)
    controller.core_info()

    print(parser.format_help(), file=sys.stderr)

    if args.sys_info:
        controller.core_info()
    if args.plugin_list:
        controller.plugin_ids()
    if args.function_list is not None:
        controller.function_list(args.function_list)
    if args.function:
        params = args.function
        try:
            if len(params) == 2:
                controller.perform_function(params[0], "", params[1])
            elif len(params) == 3:
                controller.perform_function(params[0], params[1], params[2])
        except LookupError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
    return 0
"""Plugin base classes and the shared vocabulary between core and plugins."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Any, Callable, ClassVar

__all__ = [
    "RunMode",
    "PluginType",
    "InfoType",
    "OutputInfo",
    "PluginFunction",
    "PluginAction",
    "Plugin",
    "SystemPlugin",
    "NonSystemPlugin",
]


class RunMode(enum.Enum):
    """How the host runs: with a graphical view or as a console core."""

    APPLICATION = "application"
    CORE_APPLICATION = "core_application"


class PluginType(enum.Enum):
    SYSTEM = "system"
    NON_SYSTEM = "non_system"


class InfoType(enum.Enum):
    """Kinds of notification passed between core, view and plugins."""

    STATUS = "status"
    MESSAGE = "message"
    INITIALIZE_FINISHED = "initialize_finished"
    PLUGIN_COLLECT = "plugin_collect"
    PLUGIN_COLLECT_FINISHED = "plugin_collect_finished"
    CORE_CONFIG_CHANGED = "core_config_changed"


@dataclass
class OutputInfo:
    """A notification with a kind, text and optional title."""

    type: InfoType
    content: str = ""
    title: str = ""


@dataclass(frozen=True)
class PluginFunction:
    """A named function a plugin exposes; the handler takes (plugin, arg_in)."""

    name: str
    handler: Callable[[Plugin, Any], Any]
    detail: str = ""

    def __call__(self, plugin: Plugin, arg_in: Any = None) -> Any:
        return self.handler(plugin, arg_in)


@dataclass
class PluginAction:
    """A named action a plugin offers; the handler takes (plugin, checked)."""

    name: str
    handler: Callable[[Plugin, bool], Any]
    icon: Any = None


_COPIED_FIELDS = (
    "plugin_id",
    "plugin_type",
    "alias_name",
    "version",
    "author",
    "comment",
    "file_path",
    "tag",
    "authority",
    "var",
)


@dataclass(eq=False)
class Plugin:
    """Base plugin: identity, exposed functions and actions, lifecycle hooks.

    Subclasses declare what they offer in ``FUNCTIONS``, ``ACTIONS`` and
    ``WIDGETS`` (pairs of name and factory taking the plugin).
    """

    FUNCTIONS: ClassVar[tuple[PluginFunction, ...]] = ()
    ACTIONS: ClassVar[tuple[PluginAction, ...]] = ()
    WIDGETS: ClassVar[tuple[tuple[str, Callable[[Plugin], Any]], ...]] = ()

    plugin_id: str = ""
    plugin_type: PluginType = PluginType.NON_SYSTEM
    alias_name: str = ""
    version: str = ""
    author: str = ""
    comment: str = ""
    file_path: str = ""
    tag: str = ""
    authority: int = 0
    is_enable: bool = False
    is_copy: bool = False
    copy_id: str = ""
    copy_alias_name: str = ""
    copy_comment: str = ""
    var: Any = None
    var_list: list[Any] = field(default_factory=list)
    actions: list[PluginAction] = field(default_factory=list)
    functions: list[PluginFunction] = field(default_factory=list)
    widgets: dict[str, Any] = field(default_factory=dict)
    core: Any = field(default=None, repr=False)
    stage: str = ""
    last_info: OutputInfo | None = None

    def _run_mode(self) -> RunMode | None:
        return getattr(self.core, "run_mode", None)

    def connect_core(self, core: Any) -> bool:
        """Attach to the core and build actions, functions and widgets."""
        if core is None:
            return False
        self.core = core
        self.init_actions(self)
        self.init_functions(self)
        if self._run_mode() is RunMode.APPLICATION:
            self.init_widgets(self)
        return True

    def init_actions(self, plugin: Plugin) -> None:
        """Give ``plugin`` a fresh list of this class's declared actions."""
        plugin.actions = [replace(action) for action in self.ACTIONS]

    def init_functions(self, plugin: Plugin) -> None:
        """Give ``plugin`` this class's declared functions."""
        plugin.functions = list(self.FUNCTIONS)

    def init_widgets(self, plugin: Plugin) -> None:
        """Build ``plugin``'s widgets from this class's widget factories."""
        plugin.widgets = {name: factory(plugin) for name, factory in self.WIDGETS}

    def find_function(self, name: str) -> PluginFunction | None:
        """Return the first exposed function called ``name``, if any."""
        return next((f for f in self.functions if f.name == name), None)

    def trigger_action(self, name: str, checked: bool = False) -> bool:
        """Run the first action called ``name``; return whether one was found."""
        for action in self.actions:
            if action.name == name:
                action.handler(self, checked)
                return True
        return False

    def clone(self, copy_id: str, alias_name: str = "", comment: str = "") -> Plugin | None:
        """Return a copy of this plugin under a new copy identity."""
        duplicate = type(self)()
        for name in _COPIED_FIELDS:
            setattr(duplicate, name, getattr(self, name))
        duplicate.is_copy = True
        duplicate.copy_id = copy_id
        duplicate.copy_alias_name = alias_name
        duplicate.copy_comment = comment
        duplicate.var_list = list(self.var_list)
        duplicate.actions = self.actions
        duplicate.core = self.core
        self.init_functions(duplicate)
        if self._run_mode() is RunMode.APPLICATION:
            self.init_widgets(duplicate)
        return duplicate

    def on_core_initialize(self) -> None:
        """Called once the core has installed its configuration."""
        self.stage = "core_initialized"

    def on_view_created(self) -> None:
        """Called after the main view has been built."""
        self.stage = "view_created"

    def on_view_loaded(self) -> None:
        """Called when the main view is first shown."""
        self.stage = "view_loaded"

    def on_view_closing(self) -> None:
        """Called while the main view is closing."""
        self.stage = "view_closing"

    def receive_info(self, info: OutputInfo) -> None:
        """Receive a notification broadcast by the core."""
        self.last_info = info


@dataclass(eq=False)
class SystemPlugin(Plugin):
    """A system plugin; system plugins cannot be cloned."""

    plugin_type: PluginType = PluginType.SYSTEM

    def clone(self, copy_id: str, alias_name: str = "", comment: str = "") -> None:
        """System plugins have no copies; always returns None."""
        return None


@dataclass(eq=False)
class NonSystemPlugin(Plugin):
    """A non-system plugin, which may be cloned into named copies."""

    plugin_type: PluginType = PluginType.NON_SYSTEM

    def clone(self, copy_id: str, alias_name: str = "", comment: str = "") -> NonSystemPlugin:
        """Return a copy of this plugin under a new copy identity."""
        return super().clone(copy_id, alias_name, comment)
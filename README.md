# pluginframe

A small framework for applications assembled from plugins. It looks for
plugin files in a system directory and a non-system directory. It hands each
file to a loader you supply and keeps the plugins that come back. It then
selects the plugins your configuration names and makes named copies (clones)
of non-system plugins. It also builds an ordered run list of non-system
plugins. Plugins expose named functions and actions that the host can call.

## Installation

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Modules

- `pluginframe.config` holds `ConfigModel` and its binary file format,
  together with the record types `PluginInfo`, `ClonePluginInfo` and
  `ValidPluginInfo`.
- `pluginframe.plugin` holds the plugin base classes (`Plugin`,
  `SystemPlugin`, `NonSystemPlugin`), `PluginFunction` and `PluginAction`,
  and the enums `RunMode`, `PluginType` and `InfoType`. Notifications are
  `OutputInfo` objects.
- `pluginframe.registry` holds `PluginRegistry`, which collects plugin files
  and installs a configuration.
- `pluginframe.core` holds `Core`, which owns the configuration and the
  registry and relays notifications. It also holds `InitThread`.
- `pluginframe.fileops` has file helpers: `copy_file`, `copy_directory`,
  `copy_library_files`, `is_plugin_library` and `files_differ`.
- `pluginframe.cmdline` is a standalone option parser, `Parser`.
- `pluginframe.console` holds the console host: `Controller` and `main`.

## Layout on disk

The console host expects this layout below its application directory:

```
<app>/Bin/Plugins/          system plugins
<app>/Plugins/              non-system plugins
<app>/Config/Core/CoreConfig.dat
```

## Configuration

The configuration file is a big-endian binary stream. Strings are stored as
a byte length followed by UTF-16BE text. It holds:

- the system name and id, and a user-load flag,
- the selected system and non-system plugins (id and file name),
- the clone definitions (original id, copy id, alias, comment),
- the ordered run list of non-system plugins (id, copy id, is-copy flag).

```python
from pluginframe.config import ConfigModel, PluginInfo, ValidPluginInfo

config = ConfigModel(system_name="Demo", system_id="demo")
config.non_system_plugins.append(PluginInfo("Counter", "counter.py"))
config.valid_plugins.append(ValidPluginInfo("Counter", "", False))
config.save("app/Config/Core/CoreConfig.dat")

again = ConfigModel.load("app/Config/Core/CoreConfig.dat")
assert again == config
```

Truncated or malformed data raises `ConfigFormatError`.

## Writing a plugin

Subclass `SystemPlugin` or `NonSystemPlugin`. Declare what the plugin offers
in the class attributes `FUNCTIONS` (a tuple of `PluginFunction`), `ACTIONS`
(a tuple of `PluginAction`) and `WIDGETS` (pairs of a name and a factory that
takes the plugin). `connect_core` fills the plugin's `functions` and
`actions` from them. It builds `widgets` only when the core runs in
`RunMode.APPLICATION`. A function handler takes `(plugin, arg_in)`. An action
handler takes `(plugin, checked)`.

```python
from pluginframe.plugin import NonSystemPlugin, PluginFunction

def increment(plugin, arg_in):
    plugin.var = (plugin.var or 0) + 1
    return plugin.var

class Counter(NonSystemPlugin):
    FUNCTIONS = (PluginFunction("Increment", increment, "add one"),)
```

`NonSystemPlugin.clone` returns a copy with `is_copy` set and a new copy
identity. `SystemPlugin.clone` returns `None`. The core calls
`on_core_initialize` on its plugins after it installs the configuration. It
also passes its notifications to `receive_info` on each selected system
plugin and each plugin in the run list. `on_view_created`, `on_view_loaded`
and `on_view_closing` are hooks for a host with a view to call.

## Using the core

`Core` never imports plugin files itself. Pass a `loader` that turns a file
path into a plugin object. Pass `is_library` to decide which files are
plugin files. By default that is `.so` on Linux and `.dll` on Windows, and no
file on other platforms.

```python
from pathlib import Path
from pluginframe.core import Core
from pluginframe.plugin import PluginType, RunMode

def loader(path: Path):
    if path.name == "counter.py":
        return Counter(plugin_id="Counter")
    return None

core = Core(
    RunMode.CORE_APPLICATION,
    "app",
    "app/Bin/Plugins/",
    "app/Plugins/",
    "app/Config/Core/",
    "CoreConfig.dat",
    loader=loader,
    is_library=lambda path: path.suffix == ".py",
)
core.subscribe(lambda info: print(info.type, info.content))
core.initialize()
print(core.invoke_copy(PluginType.NON_SYSTEM, "Counter", "", "Increment"))
```

The two invocation methods work as follows:

- `invoke` calls a function of a selected original plugin.
- `invoke_copy` calls one of a plugin in the run list (or a selected system
  plugin), chosen by plugin id and copy id.

Both raise `PluginNotFoundError` or `FunctionNotFoundError` when the target
does not exist.

`save_config`, `apply_config` and `cancel_config` compare the in-memory
configuration with the file. They write a temporary `temp_<name>.dat` next
to it for the comparison. `InitThread(core).start()` runs `initialize` in a
background thread and keeps any failure in its `error` attribute.

## Command line

```
pluginframe --PSysInfo
pluginframe --PLst
pluginframe --PFLst <plugin id>
pluginframe --PFunc <plugin id> --PFunc <copy id> --PFunc <function name>
pluginframe --app-dir <directory> --PLst
```

The flags do the following:

- `--PSysInfo` prints the system information.
- `--PLst` lists the system and non-system plugins collected.
- `--PFLst` lists the functions of one non-system plugin.
- `--PFunc` runs a function. Give it two values (plugin id and function name)
  or three (plugin id, copy id and function name).
- `--app-dir` sets the application directory. Without it, the directory of
  the running script is used.

## What the package does not do

The `pluginframe` command creates its `Controller` without a loader. Every
plugin file it finds then fails to load and is skipped, so from the command
line the plugin lists stay empty and `--PFunc` reports that no plugin was
found. To work with real plugins, build a `Controller` or `Core` in Python
with your own `loader`. There is no graphical host. View widgets are whatever
your plugins' `WIDGETS` factories return.

## Option parser

`pluginframe.cmdline.Parser` is a general-purpose option parser you can use
on its own. It supports:

- flags (`add`) and typed value options (`add_value`),
- `--name`, `--name=value` and bundled short options,
- `in_range` and `one_of` readers,
- `usage()` text.

`parse` takes the program name first and returns whether there were no
errors. `error()` and `error_full()` report what went wrong. `parse_check`
exits with the usage text on `--help` or on an error.
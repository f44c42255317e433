from dataclasses import dataclass
from pathlib import Path

import pytest

from pluginframe.config import ClonePluginInfo, ConfigModel, PluginInfo, ValidPluginInfo
from pluginframe.core import (
    Core,
    CoreError,
    FunctionNotFoundError,
    InitThread,
    PluginNotFoundError,
)
from pluginframe.plugin import (
    InfoType,
    NonSystemPlugin,
    OutputInfo,
    PluginFunction,
    PluginType,
    RunMode,
    SystemPlugin,
)


def _ping(plugin, arg):
    return "pong"


def _echo(plugin, arg):
    return (plugin.plugin_id, plugin.copy_id, arg)


@dataclass(eq=False)
class StubSystemPlugin(SystemPlugin):
    FUNCTIONS = (PluginFunction("Ping", _ping),)


@dataclass(eq=False)
class EchoPlugin(NonSystemPlugin):
    FUNCTIONS = (PluginFunction("Echo", _echo, "returns its input"),)


@dataclass(eq=False)
class BoomPlugin(NonSystemPlugin):
    def on_core_initialize(self):
        raise RuntimeError("boom")


_KINDS = {"sys": StubSystemPlugin, "nsys": EchoPlugin, "boom": BoomPlugin}


def _loader(path):
    kind, plugin_id = Path(path).read_text().split(":")
    return _KINDS[kind](plugin_id=plugin_id)


def _is_library(path):
    return Path(path).suffix == ".plug"


def _write_config(root, **changes):
    config = ConfigModel(
        system_name="Frame",
        system_id="GUID",
        system_plugins=[PluginInfo("UserManager", "users.plug")],
        non_system_plugins=[PluginInfo("Echo", "echo.plug")],
        clone_plugins=[ClonePluginInfo("Echo", "c1", "Echo copy", "")],
        valid_plugins=[ValidPluginInfo("Echo", "", False), ValidPluginInfo("Echo", "c1", True)],
    )
    for key, value in changes.items():
        setattr(config, key, value)
    config.save(root / "Config" / "Core" / "CoreConfig.dat")
    return config


@pytest.fixture
def root(tmp_path):
    sys_dir = tmp_path / "Bin" / "Plugins"
    sys_dir.mkdir(parents=True)
    nsys_dir = tmp_path / "Plugins"
    nsys_dir.mkdir()
    (tmp_path / "Config" / "Core").mkdir(parents=True)
    (sys_dir / "users.plug").write_text("sys:UserManager")
    (nsys_dir / "echo.plug").write_text("nsys:Echo")
    (nsys_dir / "other.plug").write_text("nsys:Other")
    _write_config(tmp_path)
    return tmp_path


def make_core(root):
    return Core(
        RunMode.CORE_APPLICATION,
        str(root),
        str(root / "Bin" / "Plugins") + "/",
        str(root / "Plugins") + "/",
        str(root / "Config" / "Core") + "/",
        "CoreConfig.dat",
        loader=_loader,
        is_library=_is_library,
    )


def test_constructor_reads_identity_from_config(root):
    core = make_core(root)
    assert core.system_name == "Frame"
    assert core.system_id == "GUID"
    assert core.system_version == "1.0.0.6"


def test_config_path_adds_separator():
    core = Core(RunMode.CORE_APPLICATION, "", "", "", "cfg/dir", "file.dat")
    assert core.config_path == "cfg/dir/file.dat"


def test_missing_config_leaves_empty_model(tmp_path):
    core = Core(RunMode.CORE_APPLICATION, str(tmp_path), "", "", str(tmp_path), "none.dat")
    assert core.system_name == ""
    messages = []
    core.subscribe(messages.append)
    with pytest.raises(FileNotFoundError):
        core.load_config(ConfigModel())
    assert [m.content for m in messages][-1] == "The core config file lost!"


def test_initialize_selects_and_orders_plugins(root):
    core = make_core(root)
    core.initialize()
    assert [p.plugin_id for p in core.system_selected] == ["UserManager"]
    assert sorted(p.plugin_id for p in core.non_system_plugins) == ["Echo", "Other"]
    assert [(p.plugin_id, p.copy_id) for p in core.valid_plugins] == [("Echo", ""), ("Echo", "c1")]
    assert all(p.stage == "core_initialized" for p in core.valid_plugins)
    assert core.system_plugins[0].stage == "core_initialized"


def test_initialize_reports_progress(root):
    core = make_core(root)
    messages = []
    core.subscribe(messages.append)
    core.initialize()
    contents = [m.content for m in messages]
    assert "Loading selected system plugins." in contents
    assert InfoType.PLUGIN_COLLECT_FINISHED in [m.type for m in messages]


def test_initialize_without_plugin_dirs(tmp_path):
    (tmp_path / "Config" / "Core").mkdir(parents=True)
    _write_config(tmp_path)
    core = make_core(tmp_path)
    messages = []
    core.subscribe(messages.append)
    core.initialize()
    assert core.valid_plugins == []
    assert any(m.content.startswith("Can not find the plugin dir path") for m in messages)


def test_initialize_failure_raises_core_error(root):
    (root / "Plugins" / "boom.plug").write_text("boom:Boom")
    _write_config(
        root,
        non_system_plugins=[PluginInfo("Boom", "boom.plug")],
        clone_plugins=[],
        valid_plugins=[ValidPluginInfo("Boom", "", False)],
    )
    core = make_core(root)
    messages = []
    core.subscribe(messages.append)
    with pytest.raises(CoreError):
        core.initialize()
    assert messages[-1] == OutputInfo(InfoType.MESSAGE, "Core Initialize failed!")


def test_invoke_system_function(root):
    core = make_core(root)
    core.initialize()
    assert core.invoke(PluginType.SYSTEM, "UserManager", "Ping") == "pong"


def test_invoke_errors(root):
    core = make_core(root)
    core.initialize()
    with pytest.raises(PluginNotFoundError):
        core.invoke(PluginType.NON_SYSTEM, "Other", "Echo")
    with pytest.raises(FunctionNotFoundError):
        core.invoke(PluginType.NON_SYSTEM, "Echo", "Missing")


def test_invoke_copy_reaches_clone(root):
    core = make_core(root)
    core.initialize()
    assert core.invoke_copy(PluginType.NON_SYSTEM, "Echo", "c1", "Echo", 5) == ("Echo", "c1", 5)
    assert core.invoke_copy(PluginType.NON_SYSTEM, "Echo", "", "Echo", 7) == ("Echo", "", 7)
    with pytest.raises(PluginNotFoundError):
        core.invoke_copy(PluginType.NON_SYSTEM, "Echo", "c2", "Echo", 1)


def test_plugins_receive_broadcasts(root):
    core = make_core(root)
    core.initialize()
    core.emit(OutputInfo(InfoType.STATUS, "hello"))
    assert core.valid_plugins[1].last_info.content == "hello"


def test_handle_info_relays_and_collects(root):
    core = make_core(root)
    messages = []
    core.subscribe(messages.append)
    info = OutputInfo(InfoType.STATUS, "relay me")
    core.handle_info(info)
    assert messages[-1] is info
    core.handle_info(OutputInfo(InfoType.PLUGIN_COLLECT))
    assert messages[-1].type is InfoType.PLUGIN_COLLECT_FINISHED
    assert sorted(p.plugin_id for p in core.non_system_plugins) == ["Echo", "Other"]


def test_unsubscribe_stops_delivery(root):
    core = make_core(root)
    messages = []
    unsubscribe = core.subscribe(messages.append)
    unsubscribe()
    core.emit(OutputInfo(InfoType.STATUS, "x"))
    assert messages == []


def test_save_config_unchanged_and_changed(root):
    core = make_core(root)
    core.initialize()
    assert core.save_config() is False
    messages = []
    core.subscribe(messages.append)
    core.config.system_name = "Renamed"
    assert core.save_config() is True
    assert ConfigModel.load(core.config_path).system_name == "Renamed"
    assert InfoType.CORE_CONFIG_CHANGED in [m.type for m in messages]
    assert core.config.system_name == "Renamed"


def test_save_config_requires_file(tmp_path):
    core = Core(RunMode.CORE_APPLICATION, str(tmp_path), "", "", str(tmp_path) + "/", "x.dat")
    with pytest.raises(FileNotFoundError):
        core.save_config()


def test_cancel_config_restores_file_contents(root):
    core = make_core(root)
    core.initialize()
    core.config.system_name = "Changed"
    assert core.cancel_config() is True
    assert core.config.system_name == "Frame"
    assert (root / "Config" / "Core" / "temp_CoreConfig.dat").is_file()
    assert core.cancel_config() is False


def test_apply_config_installs_memory_config(root):
    core = make_core(root)
    core.initialize()
    core.config.system_plugins = []
    assert core.apply_config() is True
    assert core.system_selected == []
    assert ConfigModel.load(core.config_path).system_plugins == [
        PluginInfo("UserManager", "users.plug")
    ]


def test_init_thread_runs_initialize(root):
    core = make_core(root)
    thread = InitThread(core)
    thread.start()
    thread.join()
    assert thread.error is None
    assert [p.plugin_id for p in core.system_selected] == ["UserManager"]


def test_init_thread_records_error(root):
    (root / "Plugins" / "boom.plug").write_text("boom:Boom")
    _write_config(
        root,
        non_system_plugins=[PluginInfo("Boom", "boom.plug")],
        clone_plugins=[],
        valid_plugins=[ValidPluginInfo("Boom", "", False)],
    )
    core = make_core(root)
    messages = []
    core.subscribe(messages.append)
    thread = InitThread(core)
    thread.start()
    thread.join()
    assert isinstance(thread.error, CoreError)
    assert messages[-1] == OutputInfo(InfoType.MESSAGE, "Core Initialize failed!")
    assert [p.plugin_id for p in core.valid_plugins] == ["Boom"]
"""Core configuration model and its binary stream format."""

from __future__ import annotations

import io
import struct
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import BinaryIO

__all__ = [
    "ConfigFormatError",
    "PluginInfo",
    "ClonePluginInfo",
    "ValidPluginInfo",
    "ConfigModel",
    "write_qstring",
    "read_qstring",
    "write_bool",
    "read_bool",
    "write_int32",
    "read_int32",
]

_NULL_STRING_LENGTH = 0xFFFFFFFF
_UINT32 = struct.Struct(">I")
_INT32 = struct.Struct(">i")


class ConfigFormatError(ValueError):
    """Raised when configuration data is truncated or malformed."""


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size) or b""
    if len(data) != size:
        raise ConfigFormatError(
            f"unexpected end of data: wanted {size} bytes, got {len(data)}"
        )
    return data


def write_qstring(stream: BinaryIO, value: str | None) -> None:
    """Write a string as a big-endian byte length followed by UTF-16BE text."""
    if value is None:
        stream.write(_UINT32.pack(_NULL_STRING_LENGTH))
        return
    encoded = value.encode("utf-16-be")
    stream.write(_UINT32.pack(len(encoded)))
    stream.write(encoded)


def read_qstring(stream: BinaryIO) -> str:
    """Read a string written by :func:`write_qstring`; a null string reads as ``""``."""
    (length,) = _UINT32.unpack(_read_exact(stream, 4))
    if length == _NULL_STRING_LENGTH:
        return ""
    if length % 2:
        raise ConfigFormatError(f"odd string byte length: {length}")
    try:
        return _read_exact(stream, length).decode("utf-16-be")
    except UnicodeDecodeError as exc:
        raise ConfigFormatError(f"invalid UTF-16 text: {exc}") from exc


def write_bool(stream: BinaryIO, value: bool) -> None:
    """Write a boolean as a single byte."""
    stream.write(b"\x01" if value else b"\x00")


def read_bool(stream: BinaryIO) -> bool:
    """Read a single-byte boolean; any non-zero byte is true."""
    return _read_exact(stream, 1) != b"\x00"


def write_int32(stream: BinaryIO, value: int) -> None:
    """Write a signed 32-bit big-endian integer."""
    try:
        stream.write(_INT32.pack(value))
    except struct.error as exc:
        raise ValueError(f"value out of 32-bit range: {value}") from exc


def read_int32(stream: BinaryIO) -> int:
    """Read a signed 32-bit big-endian integer."""
    (value,) = _INT32.unpack(_read_exact(stream, 4))
    return value


@dataclass
class PluginInfo:
    """A selected plugin: its identifier and the file it lives in."""

    plugin_id: str = ""
    file_name: str = ""


@dataclass
class ClonePluginInfo:
    """A configured copy of a non-system plugin."""

    original_id: str = ""
    copy_id: str = ""
    alias_name: str = ""
    comment: str = ""


@dataclass
class ValidPluginInfo:
    """One entry of the non-system plugin run order."""

    original_id: str = ""
    copy_id: str = ""
    is_copy: bool = False


@dataclass
class ConfigModel:
    """The core configuration: system identity and plugin selections."""

    system_name: str = ""
    system_id: str = ""
    user_load_enabled: bool = False
    system_plugins: list[PluginInfo] = field(default_factory=list)
    non_system_plugins: list[PluginInfo] = field(default_factory=list)
    clone_plugins: list[ClonePluginInfo] = field(default_factory=list)
    valid_plugins: list[ValidPluginInfo] = field(default_factory=list)

    def reset(self) -> None:
        """Clear every field back to its empty value."""
        self.system_name = ""
        self.system_id = ""
        self.user_load_enabled = False
        self.system_plugins.clear()
        self.non_system_plugins.clear()
        self.clone_plugins.clear()
        self.valid_plugins.clear()

    def copy_from(self, other: ConfigModel) -> None:
        """Make this model an independent copy of ``other``."""
        self.system_name = other.system_name
        self.system_id = other.system_id
        self.user_load_enabled = other.user_load_enabled
        self.system_plugins = [replace(item) for item in other.system_plugins]
        self.non_system_plugins = [replace(item) for item in other.non_system_plugins]
        self.clone_plugins = [replace(item) for item in other.clone_plugins]
        self.valid_plugins = [replace(item) for item in other.valid_plugins]

    def write(self, stream: BinaryIO) -> None:
        """Serialise the model to a binary stream."""
        write_qstring(stream, self.system_name)
        write_qstring(stream, self.system_id)
        write_bool(stream, self.user_load_enabled)
        write_int32(stream, len(self.system_plugins))
        write_int32(stream, len(self.non_system_plugins))
        write_int32(stream, len(self.clone_plugins))
        write_int32(stream, len(self.valid_plugins))

        for info in (*self.system_plugins, *self.non_system_plugins):
            write_qstring(stream, info.plugin_id)
            write_qstring(stream, info.file_name)
        for clone in self.clone_plugins:
            write_qstring(stream, clone.original_id)
            write_qstring(stream, clone.copy_id)
            write_qstring(stream, clone.alias_name)
            write_qstring(stream, clone.comment)
        for valid in self.valid_plugins:
            write_qstring(stream, valid.original_id)
            write_qstring(stream, valid.copy_id)
            write_bool(stream, valid.is_copy)

    @classmethod
    def read(cls, stream: BinaryIO) -> ConfigModel:
        """Deserialise a model from a binary stream."""
        model = cls(
            system_name=read_qstring(stream),
            system_id=read_qstring(stream),
            user_load_enabled=read_bool(stream),
        )
        sys_count = read_int32(stream)
        nsys_count = read_int32(stream)
        clone_count = read_int32(stream)
        valid_count = read_int32(stream)

        def plugin_info() -> PluginInfo:
            return PluginInfo(read_qstring(stream), read_qstring(stream))

        model.system_plugins = [plugin_info() for _ in range(sys_count)]
        model.non_system_plugins = [plugin_info() for _ in range(nsys_count)]
        model.clone_plugins = [
            ClonePluginInfo(
                read_qstring(stream),
                read_qstring(stream),
                read_qstring(stream),
                read_qstring(stream),
            )
            for _ in range(clone_count)
        ]
        model.valid_plugins = [
            ValidPluginInfo(read_qstring(stream), read_qstring(stream), read_bool(stream))
            for _ in range(valid_count)
        ]
        return model

    def to_bytes(self) -> bytes:
        """Return the serialised model."""
        buffer = io.BytesIO()
        self.write(buffer)
        return buffer.getvalue()

    @classmethod
    def from_bytes(cls, data: bytes) -> ConfigModel:
        """Build a model from serialised bytes."""
        return cls.read(io.BytesIO(data))

    @classmethod
    def load(cls, path: str | Path) -> ConfigModel:
        """Read a model from a file."""
        with open(path, "rb") as handle:
            return cls.read(handle)

    def save(self, path: str | Path) -> None:
        """Write the model to a file, replacing its contents."""
        with open(path, "wb") as handle:
            self.write(handle)
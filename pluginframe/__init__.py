"""Plugin framework: configuration store, plugin collection, cloning, invocation and a console host."""

__version__ = "1.0.0"
__all__ = ["cmdline", "config", "fileops", "plugin", "registry", "core", "console"]
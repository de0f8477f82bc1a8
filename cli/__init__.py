"""Command line tools for reading the skateway monitoring API."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name in {"app", "poller"}:
        return import_module(f"cli.{name}")
    raise AttributeError(name)

# ``cli.app`` stays a module path rather than the Typer instance so tests can
# patch ``cli.app.ApiClient`` and friends.

__all__ = []

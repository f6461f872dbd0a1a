from importlib import import_module
from types import ModuleType
from typing import Any
from .interfaces import Component

REGISTRY: dict[str, dict[str, type[Component]]] = {}


def register(kind: str, *aliases: str):
    """Register under the class's dotted path plus any short `aliases`."""

    def deco(comp_type: type[Component]):
        entries = REGISTRY.setdefault(kind, {})
        entries[f"{comp_type.__module__}.{comp_type.__name__}"] = comp_type
        for alias in aliases:
            entries[alias] = comp_type
        return comp_type

    return deco


def create(kind: str, impl: str, **params: Any) -> Component:
    # Try registry first
    comp_type: type[Component] | None = REGISTRY.get(kind, {}).get(impl)
    if comp_type is None:
        if ":" not in impl and "." not in impl:
            raise KeyError(f"no {kind} registered as '{impl}'")
        mod: str = ""
        name: str = ""
        if ":" in impl:
            mod, name = impl.split(":")
        else:
            mod, name = impl.rsplit(".", 1)
        module: ModuleType = import_module(mod)
        comp_type = getattr(module, name)
    return comp_type(**params)

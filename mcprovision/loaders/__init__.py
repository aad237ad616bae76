from __future__ import annotations

from .base import LoaderInstallResult, ModLoader
from .fabric import FabricLoader
from .paper import PaperLoader
from .vanilla import VanillaLoader


def create_loader_registry() -> dict[str, ModLoader]:
    loaders: list[ModLoader] = [
        VanillaLoader(),
        FabricLoader(),
        PaperLoader(),
    ]
    return {loader.loader_id: loader for loader in loaders}


__all__ = [
    "LoaderInstallResult",
    "ModLoader",
    "create_loader_registry",
]

from __future__ import annotations

from .base import ModProvider
from .hangar import HangarProvider
from .modrinth import ModrinthProvider


def create_mod_provider_registry() -> dict[str, ModProvider]:
    providers: list[ModProvider] = [
        ModrinthProvider(),
        HangarProvider(),
    ]
    return {provider.provider_id: provider for provider in providers}


__all__ = [
    "ModProvider",
    "create_mod_provider_registry",
]

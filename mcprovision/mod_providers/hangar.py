from __future__ import annotations

from ..exceptions import ProviderUnsupportedError
from ..models import AddModArgs, AddModResult
from .base import ModProvider


class HangarProvider(ModProvider):
    provider_id = "hangar"

    def add_mod(self, args: AddModArgs) -> AddModResult:
        raise ProviderUnsupportedError(
            f"installing {args.name} from hangar is not supported yet, use modrinth instead"
        )

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import AddModArgs, AddModResult


class ModProvider(ABC):
    provider_id: str

    @abstractmethod
    def add_mod(self, args: AddModArgs) -> AddModResult:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.provider_id

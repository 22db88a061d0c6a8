"""
Symbol registry module

Tracks every item name emitted during one build so two declarations can
never export the same symbol.
"""

from typing import Iterable

from .errors import NameCollisionError


class SymbolRegistry:
    """Build-scoped registry of emitted names"""

    def __init__(self):
        self._owners: dict[str, str] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._owners

    def __len__(self) -> int:
        return len(self._owners)

    def owner_of(self, name: str) -> str:
        """Declaration that claimed a name"""
        return self._owners[name]

    def names(self) -> list[str]:
        """All claimed names in claim order"""
        return list(self._owners)

    def claim(self, names: Iterable[str], origin: str):
        """Claim all names for one declaration, or none of them"""
        names = list(names)
        seen: set[str] = set()
        for name in names:
            if name in self._owners:
                raise NameCollisionError(
                    f'symbol `{name}` is already emitted by `{self._owners[name]}`', origin)
            if name in seen:
                raise NameCollisionError(f'symbol `{name}` is emitted twice', origin)
            seen.add(name)
        for name in names:
            self._owners[name] = origin

"""
PA Pedia - Unit Cache
======================
Session-owned store of resolved units keyed by factionId:unitId[@version].
Create one per application session and pass it to the UnitLoader; tests
create their own.
"""

from typing import Dict, Iterator, Optional

from pa_pedia.models import Unit


class UnitCache:
    def __init__(self):
        self._units: Dict[str, Unit] = {}

    def get(self, key: str) -> Optional[Unit]:
        return self._units.get(key)

    def put(self, key: str, unit: Unit):
        # Records are immutable per version, so a repeated put converges
        self._units[key] = unit

    def __contains__(self, key: str) -> bool:
        return key in self._units

    def __len__(self) -> int:
        return len(self._units)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._units))

    def evict_faction(self, faction_id: str) -> int:
        """Drop every unit of a faction (all versions). Returns how many were removed."""
        prefix = f"{faction_id}:"
        stale = [k for k in self._units if k.startswith(prefix)]
        for key in stale:
            del self._units[key]
        return len(stale)

    def clear(self):
        self._units.clear()

"""
PA Pedia - Unit Loader
=======================
The single writer of a UnitCache. Fetches go through a FactionDataService;
concurrent requests for the same key share one in-flight task.

In-flight fetches are never cancelled by their callers: a caller that
stops waiting leaves the fetch running, and its result still lands in the
cache for the next request.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from pa_pedia.cache import UnitCache
from pa_pedia.faction_data import FactionDataService
from pa_pedia.models import Unit, UnitIndexEntry
from pa_pedia.refs import build_faction_ref, make_cache_key

logger = logging.getLogger(__name__)


def _forget(tasks: Dict[str, asyncio.Task], key: str, task: asyncio.Task):
    if tasks.get(key) is task:
        del tasks[key]
    # Mark the outcome as retrieved; waiters may all have gone away
    if not task.cancelled():
        task.exception()


class UnitLoader:
    def __init__(self, service: FactionDataService, cache: Optional[UnitCache] = None):
        self.service = service
        self.cache = cache if cache is not None else UnitCache()

        self._unit_tasks: Dict[str, asyncio.Task] = {}
        self._faction_tasks: Dict[str, asyncio.Task] = {}

        self.faction_indexes: Dict[str, List[UnitIndexEntry]] = {}
        self.faction_errors: Dict[str, Exception] = {}

    # ------------------------------------------------------------------
    # Units
    # ------------------------------------------------------------------

    def get_unit(self, key: str) -> Optional[Unit]:
        return self.cache.get(key)

    def in_flight(self, key: str) -> bool:
        return key in self._unit_tasks

    async def load_unit(self, faction_id: str, unit_id: str,
                        version: Optional[str] = None) -> Unit:
        key = make_cache_key(faction_id, unit_id, version)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        task = self._unit_tasks.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(
                self._fetch_unit(key, faction_id, unit_id, version)
            )
            self._unit_tasks[key] = task
            task.add_done_callback(lambda t, k=key: _forget(self._unit_tasks, k, t))

        return await asyncio.shield(task)

    async def _fetch_unit(self, key: str, faction_id: str, unit_id: str,
                          version: Optional[str]) -> Unit:
        logger.debug("Fetching %s", key)
        try:
            unit = await self.service.resolve_unit(faction_id, unit_id, version)
        except Exception as e:
            logger.warning("Failed to resolve %s: %s", key, e)
            raise
        self.cache.put(key, unit)
        logger.debug("Resolved %s", key)
        return unit

    # ------------------------------------------------------------------
    # Factions
    # ------------------------------------------------------------------

    async def load_faction(self, faction_id: str,
                           version: Optional[str] = None) -> List[UnitIndexEntry]:
        """Load a faction's unit index and prime the cache with its resolved units."""
        ref = build_faction_ref(faction_id, version)
        if ref in self.faction_indexes:
            return self.faction_indexes[ref]

        task = self._faction_tasks.get(ref)
        if task is None:
            task = asyncio.get_running_loop().create_task(
                self._fetch_faction(ref, faction_id, version)
            )
            self._faction_tasks[ref] = task
            task.add_done_callback(lambda t, r=ref: _forget(self._faction_tasks, r, t))

        return await asyncio.shield(task)

    async def _fetch_faction(self, ref: str, faction_id: str,
                             version: Optional[str]) -> List[UnitIndexEntry]:
        try:
            entries = await self.service.list_units(faction_id, version)
        except Exception as e:
            logger.warning("Failed to load faction index for %s: %s", ref, e)
            self.faction_errors[ref] = e
            raise

        for entry in entries:
            if entry.unit is not None:
                self.cache.put(make_cache_key(faction_id, entry.identifier, version), entry.unit)
        self.faction_indexes[ref] = entries
        self.faction_errors.pop(ref, None)
        return entries

    def evict_faction(self, faction_id: str):
        """Forget cached units and indexes of a faction (every version)."""
        self.cache.evict_faction(faction_id)
        for ref in [r for r in self.faction_indexes if r.split("@", 1)[0] == faction_id]:
            del self.faction_indexes[ref]
        for ref in [r for r in self.faction_errors if r.split("@", 1)[0] == faction_id]:
            del self.faction_errors[ref]

"""
PA Pedia - Comparison Resolver
===============================
Keeps a list of ComparisonRefs resolved to units.

Each distinct cache key moves through

    IDLE -> PENDING -> SETTLED_OK | SETTLED_ERR

Transitions out of PENDING happen only when a completion message from a
watcher task is taken off the inbox queue. Results are always reported in
ref order, never in completion order.

    resolver = ComparisonResolver(loader)
    resolver.set_refs(refs)          # inside the running loop
    await resolver.settle()
    result = resolver.snapshot()     # units / loading / errors, index-aligned
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, List, Optional, Sequence, Set

from pa_pedia.loader import UnitLoader
from pa_pedia.models import ComparisonRef, ComparisonResolution

logger = logging.getLogger(__name__)


class KeyStatus(Enum):
    IDLE = auto()
    PENDING = auto()
    SETTLED_OK = auto()
    SETTLED_ERR = auto()


@dataclass
class KeyState:
    status: KeyStatus = KeyStatus.IDLE
    error: Optional[Exception] = None


@dataclass
class _Settled:
    key: str
    error: Optional[Exception] = None


class ComparisonResolver:
    def __init__(self, loader: UnitLoader):
        self.loader = loader
        self._refs: List[ComparisonRef] = []
        self._states: Dict[str, KeyState] = {}
        # Created inside the running loop on first request
        self._inbox: Optional[asyncio.Queue] = None
        self._watchers: Set[asyncio.Task] = set()

    @property
    def refs(self) -> List[ComparisonRef]:
        return list(self._refs)

    def state_of(self, key: str) -> KeyState:
        return self._states.get(key, KeyState())

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def set_refs(self, refs: Sequence[ComparisonRef]):
        """
        Replace the requested refs. Must be called with a running event loop.

        State of keys that are no longer requested is discarded; their
        fetches keep running and still fill the shared cache.
        """
        self._refs = list(refs)
        requested = {r.cache_key for r in self._refs if not r.is_pending}

        for key in [k for k in self._states if k not in requested]:
            del self._states[key]

        self._drain()
        for ref in self._refs:
            if not ref.is_pending:
                self._request(ref)

    def retry(self):
        """Re-issue every requested key whose fetch failed."""
        for ref in self._refs:
            if ref.is_pending:
                continue
            state = self._states.get(ref.cache_key)
            if state is not None and state.status is KeyStatus.SETTLED_ERR:
                self._states[ref.cache_key] = KeyState()
                self._request(ref)

    def _request(self, ref: ComparisonRef):
        key = ref.cache_key
        state = self._states.get(key)
        cached = self.loader.get_unit(key) is not None
        if state is not None and state.status is not KeyStatus.IDLE:
            # A settled unit evicted from the cache must be fetched again
            if not (state.status is KeyStatus.SETTLED_OK and not cached):
                return

        if cached:
            self._states[key] = KeyState(KeyStatus.SETTLED_OK)
            return

        if self._inbox is None:
            self._inbox = asyncio.Queue()
        self._states[key] = KeyState(KeyStatus.PENDING)
        task = asyncio.get_running_loop().create_task(self._watch(ref))
        self._watchers.add(task)
        task.add_done_callback(self._watchers.discard)

    async def _watch(self, ref: ComparisonRef):
        try:
            await self.loader.load_unit(ref.faction_id, ref.unit_id, ref.version)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._inbox.put_nowait(_Settled(ref.cache_key, e))
            return
        self._inbox.put_nowait(_Settled(ref.cache_key))

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    def _apply(self, msg: _Settled):
        state = self._states.get(msg.key)
        if state is None or state.status is not KeyStatus.PENDING:
            # Key no longer requested, or already settled by an earlier watcher
            return
        if msg.error is None:
            self._states[msg.key] = KeyState(KeyStatus.SETTLED_OK)
        else:
            logger.debug("%s settled with error: %s", msg.key, msg.error)
            self._states[msg.key] = KeyState(KeyStatus.SETTLED_ERR, msg.error)

    def _drain(self):
        if self._inbox is None:
            return
        while True:
            try:
                msg = self._inbox.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._apply(msg)

    def _has_pending(self) -> bool:
        return any(s.status is KeyStatus.PENDING for s in self._states.values())

    async def settle(self):
        """Wait until no requested key is pending."""
        self._drain()
        while self._has_pending():
            self._apply(await self._inbox.get())

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def snapshot(self) -> ComparisonResolution:
        self._drain()
        result = ComparisonResolution()
        for ref in self._refs:
            if ref.is_pending:
                unit, loading, error = None, False, None
            else:
                key = ref.cache_key
                unit = self.loader.get_unit(key)
                state = self.state_of(key)
                loading = state.status is KeyStatus.PENDING and unit is None
                error = state.error if state.status is KeyStatus.SETTLED_ERR and unit is None else None
            result.units.append(unit)
            result.loading.append(loading)
            result.errors.append(error)

        result.any_loading = any(
            not ref.is_pending and unit is None and error is None
            for ref, unit, error in zip(self._refs, result.units, result.errors)
        )
        return result

    async def resolve(self, refs: Sequence[ComparisonRef]) -> ComparisonResolution:
        self.set_refs(refs)
        await self.settle()
        return self.snapshot()

    async def aclose(self):
        """Stop watching. Fetches already started still complete into the cache."""
        watchers = list(self._watchers)
        for task in watchers:
            task.cancel()
        if watchers:
            await asyncio.gather(*watchers, return_exceptions=True)
        for key, state in list(self._states.items()):
            if state.status is KeyStatus.PENDING:
                self._states[key] = KeyState()


async def resolve_comparison(refs: Sequence[ComparisonRef],
                             loader: UnitLoader) -> ComparisonResolution:
    """Resolve refs once and report units, loading flags and errors in ref order."""
    resolver = ComparisonResolver(loader)
    try:
        return await resolver.resolve(refs)
    finally:
        await resolver.aclose()

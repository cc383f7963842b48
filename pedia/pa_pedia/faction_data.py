"""
PA Pedia - Faction Data Service
================================
Source of unit listings and resolved unit records.

The comparison engine only depends on the FactionDataService protocol.
LocalFactionDataService reads the exported faction folder layout:

    <root>/<faction>[@<version>]/metadata.json
    <root>/<faction>[@<version>]/units.json                       {"units": [...]}
    <root>/<faction>[@<version>]/units/<id>/<id>_resolved.json    (optional)
    <root>/<faction>[@<version>]/<asset path>
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pa_pedia.errors import MalformedRecordError, TransientFetchError, UnitNotFoundError
from pa_pedia.io import index_entry_from_dict, metadata_from_dict, unit_from_dict
from pa_pedia.models import FactionMetadata, Unit, UnitIndexEntry
from pa_pedia.refs import build_faction_ref

logger = logging.getLogger(__name__)


class FactionDataService(Protocol):
    async def list_factions(self) -> List[FactionMetadata]: ...

    async def list_units(self, faction_id: str,
                         version: Optional[str] = None) -> List[UnitIndexEntry]: ...

    async def resolve_unit(self, faction_id: str, unit_id: str,
                           version: Optional[str] = None) -> Unit: ...

    async def read_asset(self, faction_id: str, asset_path: str) -> Optional[bytes]: ...


class LocalFactionDataService:
    def __init__(self, root):
        self.root = Path(root)
        self._raw_indexes: Dict[str, List[dict]] = {}

    # ------------------------------------------------------------------
    # File access
    # ------------------------------------------------------------------

    def _faction_dir(self, faction_id: str, version: Optional[str]) -> Path:
        path = self.root / build_faction_ref(faction_id, version)
        if not path.is_dir():
            raise UnitNotFoundError(f"Faction not found: {build_faction_ref(faction_id, version)}")
        return path

    @staticmethod
    def _read_json(path: Path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise
        except json.JSONDecodeError as e:
            raise MalformedRecordError(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            raise TransientFetchError(f"Could not read {path}: {e}") from e

    async def _load_raw_index(self, faction_id: str, version: Optional[str]) -> List[dict]:
        ref = build_faction_ref(faction_id, version)
        if ref in self._raw_indexes:
            return self._raw_indexes[ref]

        path = self._faction_dir(faction_id, version) / "units.json"
        try:
            data = await asyncio.to_thread(self._read_json, path)
        except FileNotFoundError as e:
            raise UnitNotFoundError(f"No unit index for faction {ref}") from e

        units = data.get("units", []) if isinstance(data, dict) else []
        self._raw_indexes[ref] = units
        return units

    # ------------------------------------------------------------------
    # FactionDataService
    # ------------------------------------------------------------------

    async def list_factions(self) -> List[FactionMetadata]:
        """Metadata of every faction folder. Folders that fail to load are skipped."""
        result = []
        if not self.root.is_dir():
            return result
        for folder in sorted(p for p in self.root.iterdir() if p.is_dir()):
            try:
                data = await asyncio.to_thread(self._read_json, folder / "metadata.json")
            except (FileNotFoundError, MalformedRecordError, TransientFetchError) as e:
                logger.warning("Skipping faction folder %s: %s", folder.name, e)
                continue
            result.append(metadata_from_dict(data, folder.name))
        return result

    async def list_units(self, faction_id: str,
                         version: Optional[str] = None) -> List[UnitIndexEntry]:
        raw = await self._load_raw_index(faction_id, version)
        return [index_entry_from_dict(entry) for entry in raw]

    async def resolve_unit(self, faction_id: str, unit_id: str,
                           version: Optional[str] = None) -> Unit:
        faction_dir = self._faction_dir(faction_id, version)

        resolved = faction_dir / "units" / unit_id / f"{unit_id}_resolved.json"
        try:
            data = await asyncio.to_thread(self._read_json, resolved)
            return unit_from_dict(data)
        except FileNotFoundError:
            pass

        for entry in await self._load_raw_index(faction_id, version):
            if entry.get("identifier") == unit_id and entry.get("unit") is not None:
                return unit_from_dict(entry["unit"])

        raise UnitNotFoundError(
            f"Unit {unit_id} not found for faction {build_faction_ref(faction_id, version)}"
        )

    async def read_asset(self, faction_id: str, asset_path: str) -> Optional[bytes]:
        path = self.root / faction_id / asset_path
        if not path.is_file():
            return None
        return await asyncio.to_thread(path.read_bytes)

    def forget(self, faction_id: str):
        """Drop memoized indexes of a faction, e.g. after its files changed."""
        for ref in [r for r in self._raw_indexes if r.split("@", 1)[0] == faction_id]:
            del self._raw_indexes[ref]

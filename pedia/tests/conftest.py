"""Shared test fixtures for the PA Pedia test suite."""

import asyncio
import json
import sys
from pathlib import Path

import pytest

# Ensure pedia/ is on the path so `pa_pedia` imports work
PEDIA_ROOT = Path(__file__).parent.parent
if str(PEDIA_ROOT) not in sys.path:
    sys.path.insert(0, str(PEDIA_ROOT))

from pa_pedia.errors import UnitNotFoundError
from pa_pedia.models import (
    BuildRelationships, CombatSpecs, EconomySpecs, FactionMetadata, MobilitySpecs,
    ReconSpecs, Resources, SpecialSpecs, Unit, UnitIndexEntry, UnitSpecs, Weapon,
)
from pa_pedia.refs import make_cache_key


def make_weapon(safe_name="laser", dps=10.0, count=1, layers=None, **kw) -> Weapon:
    return Weapon(
        resource_name=f"/pa/tools/{safe_name}.json",
        safe_name=safe_name,
        name=kw.pop("name", safe_name.replace("_", " ").title()),
        count=count,
        rate_of_fire=kw.pop("rate_of_fire", 1.0),
        damage=kw.pop("damage", dps),
        dps=dps,
        target_layers=list(layers if layers is not None else ["LandHorizontal"]),
        **kw,
    )


def make_unit(unit_id="tank", health=100.0, cost=100.0, dps=None, weapons=None,
              move_speed=None, vision=None, amphibious=None, hover=None,
              build_rate=None, builds=None, display_name=None, unit_types=None,
              **economy) -> Unit:
    weapons = weapons if weapons is not None else []
    if dps is None:
        dps = sum(w.dps * w.count for w in weapons)
    return Unit(
        id=unit_id,
        display_name=display_name or unit_id.replace("_", " ").title(),
        resource_name=f"/pa/units/{unit_id}/{unit_id}.json",
        unit_types=list(unit_types or ["Land", "Mobile"]),
        specs=UnitSpecs(
            combat=CombatSpecs(health=health, dps=dps, weapons=weapons),
            economy=EconomySpecs(
                build_cost=cost,
                production=economy.pop("production", Resources()),
                build_rate=build_rate,
                **economy,
            ),
            mobility=MobilitySpecs(move_speed=move_speed) if move_speed is not None else None,
            recon=ReconSpecs(vision_radius=vision) if vision is not None else None,
            special=SpecialSpecs(amphibious=amphibious, hover=hover)
            if amphibious is not None or hover is not None else None,
        ),
        build_relationships=BuildRelationships(builds=list(builds or [])),
    )


def make_entry(unit: Unit, identifier=None, display_name=None, unit_types=None) -> UnitIndexEntry:
    return UnitIndexEntry(
        identifier=identifier or unit.id,
        display_name=display_name or unit.display_name,
        unit_types=list(unit_types if unit_types is not None else unit.unit_types),
        unit=unit,
    )


def make_commander(identifier, display_name=None, health=12500.0, weapons=None, **kw):
    unit = make_unit(
        identifier, health=health, cost=0.0, display_name=display_name,
        weapons=weapons if weapons is not None else [make_weapon("uber_cannon", dps=255.0)],
        unit_types=["Commander", "Land", "Mobile"], **kw,
    )
    return make_entry(unit)


class FakeService:
    """
    In-memory FactionDataService. Counts resolve_unit calls per key and can
    hold a fetch open (gates) or fail it (failures) for a given key.
    """

    def __init__(self, units=None, delay=0.0):
        self.units = dict(units or {})        # cache key -> Unit
        self.delay = delay
        self.calls = {}
        self.gates = {}                        # cache key -> asyncio.Event
        self.failures = {}                     # cache key -> Exception
        self.factions = {}                     # faction ref -> [UnitIndexEntry]
        self.assets = {}                       # (faction_id, path) -> bytes

    def add(self, faction_id, unit, version=None):
        self.units[make_cache_key(faction_id, unit.id, version)] = unit
        return unit

    async def list_factions(self):
        return [FactionMetadata(identifier=ref, display_name=ref) for ref in self.factions]

    async def list_units(self, faction_id, version=None):
        ref = f"{faction_id}@{version}" if version else faction_id
        if ref not in self.factions:
            raise UnitNotFoundError(f"Faction not found: {ref}")
        return self.factions[ref]

    async def resolve_unit(self, faction_id, unit_id, version=None):
        key = make_cache_key(faction_id, unit_id, version)
        self.calls[key] = self.calls.get(key, 0) + 1
        if self.delay:
            await asyncio.sleep(self.delay)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self.failures:
            raise self.failures[key]
        if key not in self.units:
            raise UnitNotFoundError(f"Unit {unit_id} not found")
        return self.units[key]

    async def read_asset(self, faction_id, asset_path):
        return self.assets.get((faction_id, asset_path))


@pytest.fixture
def tank():
    return make_unit("tank", health=200.0, cost=150.0,
                     weapons=[make_weapon("tank_laser", dps=40.0)],
                     move_speed=11.0, vision=100.0)


@pytest.fixture
def bot():
    return make_unit("bot", health=100.0, cost=90.0,
                     weapons=[make_weapon("bot_gun", dps=25.0)],
                     move_speed=15.0, vision=120.0)


@pytest.fixture
def fake_service(tank, bot):
    service = FakeService()
    service.add("MLA", tank)
    service.add("MLA", bot)
    return service


def _unit_json(unit_id, display_name, unit_types, health=200, cost=150, dps=40, builds=None):
    return {
        "id": unit_id,
        "displayName": display_name,
        "unitTypes": unit_types,
        "specs": {
            "combat": {
                "health": health,
                "dps": dps,
                "weapons": [
                    {"safeName": f"{unit_id}_weapon", "dps": dps, "damage": dps,
                     "rateOfFire": 1.0, "maxRange": 100,
                     "targetLayers": ["LandHorizontal"]}
                ] if dps else [],
            },
            "economy": {"buildCost": cost, "buildRate": 10 if builds else None},
            "mobility": {"moveSpeed": 10},
        },
        "buildRelationships": {"builds": builds or []},
    }


@pytest.fixture
def faction_root(tmp_path):
    """On-disk faction folder with an index, a resolved-file override and an asset."""
    root = tmp_path / "factions"
    mla = root / "MLA"
    mla.mkdir(parents=True)
    (mla / "metadata.json").write_text(json.dumps({
        "identifier": "MLA", "displayName": "Machine Legion", "version": "1.0.0",
    }))
    entries = [
        ("alpha", "Alpha Commander", ["Commander", "Land"], 12500, 0, 255, ["tank"]),
        ("raptor", "Raptor Commander", ["Commander", "Land"], 12500.0, 0, 255.0, ["tank"]),
        ("quad", "Quad Commander", ["Commander", "Land"], 15000, 0, 255, ["tank"]),
        ("tank", "Ant", ["Land", "Tank"], 200, 150, 40, None),
    ]
    (mla / "units.json").write_text(json.dumps({"units": [
        {"identifier": uid, "displayName": name, "unitTypes": types, "source": "pa",
         "unit": _unit_json(uid, name, types, hp, cost, dps, builds)}
        for uid, name, types, hp, cost, dps, builds in entries
    ]}))

    # A resolved file takes precedence over the index entry
    resolved_dir = mla / "units" / "tank"
    resolved_dir.mkdir(parents=True)
    (resolved_dir / "tank_resolved.json").write_text(
        json.dumps(_unit_json("tank", "Ant (resolved)", ["Land", "Tank"]))
    )

    (mla / "ui").mkdir()
    (mla / "ui" / "tank_icon.png").write_bytes(b"\x89PNG fake")

    broken = root / "Broken"
    broken.mkdir()
    (broken / "metadata.json").write_text("{ not json")
    return root

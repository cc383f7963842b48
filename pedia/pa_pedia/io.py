"""
PA Pedia - I/O
===============
Translate exported faction JSON into dataclasses, and load / save
comparison sets from YAML files.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from pa_pedia.errors import MalformedRecordError
from pa_pedia.models import (
    AggregatedGroupStats, BuildRelationships, CombatSpecs, ComparisonRefWithQuantity,
    EconomySpecs, FactionMetadata, MobilitySpecs, ReconSpecs, Resources,
    SpecialSpecs, Unit, UnitFile, UnitIndexEntry, UnitSpecs, Weapon,
)
from pa_pedia.refs import build_comparison_ref, parse_comparison_ref, parse_quantity


# ---------------------------------------------------------------------------
# Faction JSON (camelCase) -> dataclasses
# ---------------------------------------------------------------------------

def _resources(data: Optional[dict]) -> Resources:
    data = data or {}
    return Resources(metal=data.get("metal"), energy=data.get("energy"))


def weapon_from_dict(data: dict) -> Weapon:
    return Weapon(
        resource_name=data.get("resourceName", ""),
        safe_name=data["safeName"],
        name=data.get("name"),
        count=data.get("count", 1),
        rate_of_fire=data.get("rateOfFire", 0.0),
        damage=data.get("damage", 0.0),
        dps=data.get("dps", 0.0),
        sustained_dps=data.get("sustainedDps"),
        max_range=data.get("maxRange"),
        splash_damage=data.get("splashDamage"),
        splash_radius=data.get("splashRadius"),
        self_destruct=data.get("selfDestruct", False),
        death_explosion=data.get("deathExplosion", False),
        ammo_source=data.get("ammoSource"),
        ammo_per_shot=data.get("ammoPerShot"),
        target_layers=list(data.get("targetLayers", [])),
    )


def specs_from_dict(data: dict) -> UnitSpecs:
    combat = data["combat"]
    economy = data["economy"]
    mobility = data.get("mobility")
    recon = data.get("recon")
    special = data.get("special")

    return UnitSpecs(
        combat=CombatSpecs(
            health=combat["health"],
            dps=combat.get("dps"),
            salvo_damage=combat.get("salvoDamage"),
            weapons=[weapon_from_dict(w) for w in combat.get("weapons", [])],
        ),
        economy=EconomySpecs(
            build_cost=economy["buildCost"],
            production=_resources(economy.get("production")),
            consumption=_resources(economy.get("consumption")),
            storage=_resources(economy.get("storage")),
            tool_consumption=_resources(economy.get("toolConsumption")),
            build_rate=economy.get("buildRate"),
            metal_rate=economy.get("metalRate"),
            energy_rate=economy.get("energyRate"),
            build_range=economy.get("buildRange"),
        ),
        mobility=MobilitySpecs(
            move_speed=mobility.get("moveSpeed"),
            turn_speed=mobility.get("turnSpeed"),
            acceleration=mobility.get("acceleration"),
            brake=mobility.get("brake"),
        ) if mobility is not None else None,
        recon=ReconSpecs(
            vision_radius=recon.get("visionRadius"),
            underwater_vision_radius=recon.get("underwaterVisionRadius"),
            orbital_vision_radius=recon.get("orbitalVisionRadius"),
            radar_radius=recon.get("radarRadius"),
            sonar_radius=recon.get("sonarRadius"),
            orbital_radar_radius=recon.get("orbitalRadarRadius"),
        ) if recon is not None else None,
        special=SpecialSpecs(
            amphibious=special.get("amphibious"),
            hover=special.get("hover"),
            spawn_unit_on_death=special.get("spawnUnitOnDeath"),
        ) if special is not None else None,
    )


def unit_from_dict(data: dict) -> Unit:
    """
    Build a Unit from a resolved unit record.

    A record without "specs" becomes a partially resolved Unit (specs=None).
    A "specs" block missing combat/economy or their required numbers raises
    MalformedRecordError.
    """
    try:
        unit_id = data["id"]
        specs = specs_from_dict(data["specs"]) if data.get("specs") is not None else None
    except (KeyError, TypeError) as e:
        raise MalformedRecordError(f"Malformed unit record {data.get('id', '?')!r}: {e}") from e

    rel = data.get("buildRelationships") or {}
    return Unit(
        id=unit_id,
        display_name=data.get("displayName", unit_id),
        resource_name=data.get("resourceName", ""),
        description=data.get("description", ""),
        image=data.get("image", ""),
        tier=data.get("tier", 1),
        unit_types=list(data.get("unitTypes", [])),
        accessible=data.get("accessible", True),
        specs=specs,
        build_relationships=BuildRelationships(
            built_by=list(rel.get("builtBy", [])),
            builds=list(rel.get("builds", [])),
        ),
    )


def index_entry_from_dict(data: dict) -> UnitIndexEntry:
    unit_data = data.get("unit")
    return UnitIndexEntry(
        identifier=data["identifier"],
        display_name=data.get("displayName", data["identifier"]),
        unit_types=list(data.get("unitTypes", [])),
        source=data.get("source", ""),
        files=[UnitFile(path=f["path"], source=f.get("source", ""))
               for f in data.get("files", [])],
        unit=unit_from_dict(unit_data) if unit_data is not None else None,
    )


def metadata_from_dict(data: dict, folder_name: str = "") -> FactionMetadata:
    return FactionMetadata(
        identifier=data.get("identifier", folder_name),
        display_name=data.get("displayName", folder_name),
        version=data.get("version", ""),
        author=data.get("author", ""),
        description=data.get("description", ""),
        type=data.get("type", "base-game"),
        is_addon=data.get("isAddon", False),
        base_factions=list(data.get("baseFactions", [])),
    )


# ---------------------------------------------------------------------------
# Comparison sets (YAML)
# ---------------------------------------------------------------------------

@dataclass
class UnitGroup:
    name: str
    members: List[ComparisonRefWithQuantity] = field(default_factory=list)


@dataclass
class ComparisonSet:
    name: str
    description: str = ""
    groups: List[UnitGroup] = field(default_factory=list)


def _member_from_yaml(item) -> ComparisonRefWithQuantity:
    if isinstance(item, str):
        return parse_comparison_ref(item)
    return ComparisonRefWithQuantity(
        faction_id=item["faction"],
        unit_id=item.get("unit", ""),
        version=item.get("version"),
        quantity=parse_quantity(item.get("quantity", 1)),
    )


def load_comparison(filepath: str) -> ComparisonSet:
    """
    Load a comparison set. Members are ref strings ("MLA/tank:3") or
    mappings with faction / unit / version / quantity keys.
    """
    with open(filepath, "r") as f:
        data = yaml.safe_load(f) or {}

    cs = ComparisonSet(
        name=data.get("name", Path(filepath).stem),
        description=data.get("description", ""),
    )
    for i, group in enumerate(data.get("groups", [])):
        cs.groups.append(UnitGroup(
            name=group.get("name", f"Group {i + 1}"),
            members=[_member_from_yaml(m) for m in group.get("units", [])],
        ))
    return cs


def save_comparison(cs: ComparisonSet, filepath: str):
    data = {
        "name": cs.name,
        "description": cs.description,
        "groups": [
            {"name": g.name, "units": [build_comparison_ref(m) for m in g.members]}
            for g in cs.groups
        ],
    }
    with open(filepath, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def group_stats_to_dict(stats: AggregatedGroupStats) -> dict:
    return asdict(stats)


def export_group_stats_json(stats: AggregatedGroupStats, filepath: str):
    with open(filepath, "w") as f:
        json.dump(group_stats_to_dict(stats), f, indent=2)

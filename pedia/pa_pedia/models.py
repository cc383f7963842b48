"""
PA Pedia - Data Models
=======================
All dataclasses for unit records, comparison refs and aggregated results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from pa_pedia.refs import make_cache_key


# ---------------------------------------------------------------------------
# Unit specifications (resolved data)
# ---------------------------------------------------------------------------

@dataclass
class Resources:
    metal: Optional[float] = None
    energy: Optional[float] = None


@dataclass
class Weapon:
    resource_name: str
    safe_name: str
    name: Optional[str] = None
    count: int = 1
    rate_of_fire: float = 0.0
    damage: float = 0.0
    dps: float = 0.0
    sustained_dps: Optional[float] = None   # ammo-limited DPS
    max_range: Optional[float] = None
    splash_damage: Optional[float] = None
    splash_radius: Optional[float] = None
    self_destruct: bool = False
    death_explosion: bool = False
    ammo_source: Optional[str] = None
    ammo_per_shot: Optional[float] = None
    target_layers: List[str] = field(default_factory=list)


@dataclass
class CombatSpecs:
    health: float
    dps: Optional[float] = None
    salvo_damage: Optional[float] = None
    weapons: List[Weapon] = field(default_factory=list)


@dataclass
class EconomySpecs:
    build_cost: float
    production: Resources = field(default_factory=Resources)
    consumption: Resources = field(default_factory=Resources)
    storage: Resources = field(default_factory=Resources)
    tool_consumption: Resources = field(default_factory=Resources)
    build_rate: Optional[float] = None
    metal_rate: Optional[float] = None
    energy_rate: Optional[float] = None
    build_range: Optional[float] = None


@dataclass
class MobilitySpecs:
    move_speed: Optional[float] = None
    turn_speed: Optional[float] = None
    acceleration: Optional[float] = None
    brake: Optional[float] = None


@dataclass
class ReconSpecs:
    vision_radius: Optional[float] = None
    underwater_vision_radius: Optional[float] = None
    orbital_vision_radius: Optional[float] = None
    radar_radius: Optional[float] = None
    sonar_radius: Optional[float] = None
    orbital_radar_radius: Optional[float] = None


@dataclass
class SpecialSpecs:
    amphibious: Optional[bool] = None
    hover: Optional[bool] = None
    spawn_unit_on_death: Optional[str] = None


@dataclass
class UnitSpecs:
    combat: CombatSpecs
    economy: EconomySpecs
    mobility: Optional[MobilitySpecs] = None
    recon: Optional[ReconSpecs] = None
    special: Optional[SpecialSpecs] = None


@dataclass
class BuildRelationships:
    built_by: List[str] = field(default_factory=list)
    builds: List[str] = field(default_factory=list)


@dataclass
class Unit:
    """A resolved unit. Never mutated once it is in a UnitCache."""
    id: str
    display_name: str
    resource_name: str = ""
    description: str = ""
    image: str = ""
    tier: int = 1
    unit_types: List[str] = field(default_factory=list)
    accessible: bool = True
    specs: Optional[UnitSpecs] = None    # None = partially resolved
    build_relationships: BuildRelationships = field(default_factory=BuildRelationships)


# ---------------------------------------------------------------------------
# Faction listing
# ---------------------------------------------------------------------------

@dataclass
class UnitFile:
    path: str
    source: str


@dataclass
class UnitIndexEntry:
    identifier: str
    display_name: str
    unit_types: List[str] = field(default_factory=list)
    source: str = ""
    files: List[UnitFile] = field(default_factory=list)
    unit: Optional[Unit] = None


@dataclass
class FactionMetadata:
    identifier: str
    display_name: str
    version: str = ""
    author: str = ""
    description: str = ""
    type: str = "base-game"       # "base-game" or "mod"
    is_addon: bool = False
    base_factions: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Comparison refs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ComparisonRef:
    faction_id: str
    unit_id: str
    version: Optional[str] = None

    @property
    def cache_key(self) -> str:
        return make_cache_key(self.faction_id, self.unit_id, self.version)

    @property
    def is_pending(self) -> bool:
        """An empty unit id is a selection slot that has not been filled yet."""
        return not self.unit_id


@dataclass(frozen=True)
class ComparisonRefWithQuantity(ComparisonRef):
    quantity: int = 1


# ---------------------------------------------------------------------------
# Commander grouping
# ---------------------------------------------------------------------------

@dataclass
class CommanderGroup:
    representative: UnitIndexEntry
    variants: List[UnitIndexEntry] = field(default_factory=list)
    stats_hash: str = ""

    @property
    def members(self) -> List[UnitIndexEntry]:
        return [self.representative] + self.variants


@dataclass
class CommanderGroupingResult:
    commanders: List[CommanderGroup] = field(default_factory=list)
    non_commanders: List[UnitIndexEntry] = field(default_factory=list)


@dataclass
class CommanderGroupMaps:
    group_map: Dict[str, CommanderGroup] = field(default_factory=dict)
    variant_identifiers: set = field(default_factory=set)


# ---------------------------------------------------------------------------
# Group aggregation
# ---------------------------------------------------------------------------

@dataclass
class GroupMember:
    unit: Unit
    quantity: int = 1
    faction_id: str = ""


@dataclass
class WeaponSource:
    faction_id: str
    unit_id: str
    display_name: str
    quantity: int


@dataclass
class AggregatedWeapon:
    safe_name: str
    display_name: str
    target_layers: List[str] = field(default_factory=list)
    total_count: int = 0
    total_dps: float = 0.0
    total_sustained_dps: Optional[float] = None
    total_damage: float = 0.0
    max_range: Optional[float] = None
    rate_of_fire: Optional[float] = None
    source_units: List[WeaponSource] = field(default_factory=list)


@dataclass
class AggregatedGroupStats:
    # SUM (scales with quantity)
    total_hp: float = 0.0
    total_build_cost: float = 0.0
    total_dps: float = 0.0
    total_sustained_dps: Optional[float] = None
    total_salvo_damage: float = 0.0
    total_metal_production: float = 0.0
    total_energy_production: float = 0.0
    total_metal_consumption: float = 0.0
    total_energy_consumption: float = 0.0
    total_metal_storage: float = 0.0
    total_energy_storage: float = 0.0
    total_build_rate: float = 0.0
    total_tool_energy_consumption: float = 0.0

    # MIN (slowest unit limits the group)
    min_move_speed: Optional[float] = None
    min_acceleration: Optional[float] = None
    min_brake: Optional[float] = None
    min_turn_speed: Optional[float] = None

    # MAX (best capability in the group)
    max_vision_radius: Optional[float] = None
    max_underwater_vision_radius: Optional[float] = None
    max_radar_radius: Optional[float] = None
    max_sonar_radius: Optional[float] = None
    max_weapon_range: Optional[float] = None
    max_build_range: Optional[float] = None

    # DERIVED
    dps_per_metal: Optional[float] = None
    hp_per_metal: Optional[float] = None

    # BOOLEAN
    any_amphibious: bool = False
    all_amphibious: bool = False
    any_hover: bool = False
    all_hover: bool = False

    # WEAPON
    weapons: List[AggregatedWeapon] = field(default_factory=list)

    # SET
    all_target_layers: List[str] = field(default_factory=list)
    all_builds: List[str] = field(default_factory=list)
    build_rate_by_unit: Dict[str, float] = field(default_factory=dict)

    # Metadata
    unit_count: int = 0
    distinct_unit_types: int = 0


# ---------------------------------------------------------------------------
# Value comparison
# ---------------------------------------------------------------------------

class Directionality(Enum):
    HIGHER_BETTER = "higher-better"
    LOWER_BETTER = "lower-better"
    NEUTRAL = "neutral"


class Judgement(Enum):
    IMPROVED = "improved"
    REGRESSED = "regressed"


@dataclass
class ComparisonValue:
    value: Union[float, str, None]
    diff: Optional[float] = None
    judgement: Optional[Judgement] = None


# ---------------------------------------------------------------------------
# Resolution results
# ---------------------------------------------------------------------------

@dataclass
class UnitSlot:
    unit: Optional[Unit] = None
    loading: bool = False
    error: Optional[Exception] = None


@dataclass
class ComparisonResolution:
    """Resolver output, index-aligned with the requested refs."""
    units: List[Optional[Unit]] = field(default_factory=list)
    loading: List[bool] = field(default_factory=list)
    errors: List[Optional[Exception]] = field(default_factory=list)
    any_loading: bool = False

    @property
    def slots(self) -> List[UnitSlot]:
        return [
            UnitSlot(unit=u, loading=l, error=e)
            for u, l, e in zip(self.units, self.loading, self.errors)
        ]

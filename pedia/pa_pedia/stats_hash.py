"""
PA Pedia - Stats Equivalence Hash
==================================
Canonical fingerprint of a unit's gameplay-relevant stats.

Two units hash equal when every comparable field matches exactly, regardless
of id, display name, description, resource path, icon or weapon order.
Numbers are compared without tolerance; 200 and 200.0 are the same value.
"""

import hashlib
from typing import List

from pa_pedia.errors import MalformedRecordError
from pa_pedia.models import Resources, Unit, Weapon


def _canon(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return repr(float(value))
    return str(value)


def _resources(res: Resources) -> List[str]:
    return [_canon(res.metal), _canon(res.energy)]


def weapon_signature(weapon: Weapon) -> str:
    parts = [
        weapon.safe_name,
        weapon.count,
        weapon.damage,
        weapon.dps,
        weapon.sustained_dps,
        weapon.rate_of_fire,
        weapon.max_range,
        weapon.splash_damage,
        weapon.splash_radius,
        weapon.self_destruct,
        weapon.death_explosion,
        weapon.ammo_source,
        weapon.ammo_per_shot,
        ",".join(sorted(weapon.target_layers)),
    ]
    return "|".join(_canon(p) for p in parts)


def stats_signature(unit: Unit) -> str:
    """Readable canonical form of every comparable field."""
    specs = unit.specs
    if specs is None:
        raise MalformedRecordError(f"Unit {unit.id!r} has no resolved specs")

    combat = specs.combat
    economy = specs.economy
    mobility = specs.mobility
    recon = specs.recon
    special = specs.special

    weapons = sorted(weapon_signature(w) for w in combat.weapons)

    parts = [
        # Combat
        combat.health,
        combat.dps,
        combat.salvo_damage,
        ";".join(weapons),
        # Economy
        economy.build_cost,
        economy.build_rate,
        economy.metal_rate,
        economy.energy_rate,
        economy.build_range,
        *_resources(economy.production),
        *_resources(economy.consumption),
        *_resources(economy.storage),
        *_resources(economy.tool_consumption),
    ]

    if mobility is not None:
        parts += [mobility.move_speed, mobility.turn_speed,
                  mobility.acceleration, mobility.brake]
    else:
        parts += [None] * 4

    if recon is not None:
        parts += [recon.vision_radius, recon.underwater_vision_radius,
                  recon.orbital_vision_radius, recon.radar_radius,
                  recon.sonar_radius, recon.orbital_radar_radius]
    else:
        parts += [None] * 6

    # Special: an undeclared flag is the same as False
    if special is not None:
        parts += [bool(special.amphibious), bool(special.hover),
                  special.spawn_unit_on_death or ""]
    else:
        parts += [False, False, ""]

    return "::".join(_canon(p) for p in parts)


def compute_stats_hash(unit: Unit) -> str:
    return hashlib.sha1(stats_signature(unit).encode("utf-8")).hexdigest()

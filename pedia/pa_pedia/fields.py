"""
PA Pedia - Comparison Fields
=============================
Central registry of the stats shown side by side, in display order, with
the direction in which a change counts as an improvement.
"""

from pa_pedia.models import Directionality

HIGHER = Directionality.HIGHER_BETTER
LOWER = Directionality.LOWER_BETTER
NEUTRAL = Directionality.NEUTRAL

# ---------------------------------------------------------------------------
# Group mode (AggregatedGroupStats attributes)
# ---------------------------------------------------------------------------
# (attribute, label, directionality)

GROUP_STAT_FIELDS = [
    # Overview
    ("unit_count",                    "Units",            NEUTRAL),
    ("total_build_cost",              "Build Cost",       LOWER),
    ("total_hp",                      "Total HP",         HIGHER),
    ("total_dps",                     "Total DPS",        HIGHER),
    ("total_sustained_dps",           "Sustained DPS",    HIGHER),
    ("total_salvo_damage",            "Salvo Damage",     HIGHER),
    ("dps_per_metal",                 "DPS / Metal",      HIGHER),
    ("hp_per_metal",                  "HP / Metal",       HIGHER),
    # Economy
    ("total_metal_production",        "Metal Prod",       HIGHER),
    ("total_energy_production",       "Energy Prod",      HIGHER),
    ("total_metal_consumption",       "Metal Use",        LOWER),
    ("total_energy_consumption",      "Energy Use",       LOWER),
    ("total_metal_storage",           "Metal Storage",    HIGHER),
    ("total_energy_storage",          "Energy Storage",   HIGHER),
    ("total_build_rate",              "Build Rate",       HIGHER),
    ("total_tool_energy_consumption", "Build Energy",     LOWER),
    ("max_build_range",               "Build Range",      HIGHER),
    # Mobility
    ("min_move_speed",                "Move Speed",       HIGHER),
    ("min_acceleration",              "Acceleration",     HIGHER),
    ("min_brake",                     "Brake",            HIGHER),
    ("min_turn_speed",                "Turn Speed",       HIGHER),
    # Recon
    ("max_vision_radius",             "Vision",           HIGHER),
    ("max_underwater_vision_radius",  "Underwater Vision", HIGHER),
    ("max_radar_radius",              "Radar",            HIGHER),
    ("max_sonar_radius",              "Sonar",            HIGHER),
    ("max_weapon_range",              "Weapon Range",     HIGHER),
]

# ---------------------------------------------------------------------------
# Unit mode (dotted paths into Unit.specs)
# ---------------------------------------------------------------------------

UNIT_STAT_FIELDS = [
    ("combat.health",               "Health",         HIGHER),
    ("combat.dps",                  "DPS",            HIGHER),
    ("combat.salvo_damage",         "Salvo Damage",   HIGHER),
    ("economy.build_cost",          "Build Cost",     LOWER),
    ("economy.build_rate",          "Build Rate",     HIGHER),
    ("economy.build_range",         "Build Range",    HIGHER),
    ("mobility.move_speed",         "Move Speed",     HIGHER),
    ("mobility.acceleration",       "Acceleration",   HIGHER),
    ("mobility.brake",              "Brake",          HIGHER),
    ("mobility.turn_speed",         "Turn Speed",     HIGHER),
    ("recon.vision_radius",         "Vision",         HIGHER),
    ("recon.radar_radius",          "Radar",          HIGHER),
    ("recon.sonar_radius",          "Sonar",          HIGHER),
]

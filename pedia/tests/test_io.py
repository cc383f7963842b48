"""Tests for faction JSON translation and YAML comparison sets."""

import json
import sys
import tempfile
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from pa_pedia.aggregation import aggregate_group
from pa_pedia.errors import MalformedRecordError
from pa_pedia.io import (
    ComparisonSet, UnitGroup, export_group_stats_json, index_entry_from_dict,
    load_comparison, metadata_from_dict, save_comparison, unit_from_dict,
)
from pa_pedia.models import ComparisonRefWithQuantity, GroupMember

EXAMPLE_PATH = Path(__file__).parent.parent / "data" / "comparisons" / "example.yaml"

UNIT_JSON = {
    "id": "tank_light_laser",
    "displayName": "Ant",
    "unitTypes": ["Land", "Tank"],
    "tier": 1,
    "specs": {
        "combat": {
            "health": 200,
            "dps": 40,
            "weapons": [{
                "resourceName": "/pa/tools/laser.json", "safeName": "laser",
                "count": 2, "rateOfFire": 1.0, "damage": 20, "dps": 20,
                "maxRange": 100, "targetLayers": ["LandHorizontal"],
            }],
        },
        "economy": {
            "buildCost": 150,
            "production": {"energy": 5},
            "toolConsumption": {"energy": 10},
        },
        "mobility": {"moveSpeed": 11},
        "special": {"amphibious": True},
    },
    "buildRelationships": {"builtBy": ["vehicle_factory"]},
}


class TestUnitFromDict:
    def test_full_record(self):
        unit = unit_from_dict(UNIT_JSON)
        assert unit.id == "tank_light_laser"
        assert unit.display_name == "Ant"
        assert unit.specs.combat.health == 200
        weapon = unit.specs.combat.weapons[0]
        assert weapon.safe_name == "laser"
        assert weapon.count == 2
        assert weapon.target_layers == ["LandHorizontal"]
        assert unit.specs.economy.production.energy == 5
        assert unit.specs.economy.production.metal is None
        assert unit.specs.economy.tool_consumption.energy == 10
        assert unit.specs.mobility.move_speed == 11
        assert unit.specs.recon is None
        assert unit.specs.special.amphibious is True
        assert unit.build_relationships.built_by == ["vehicle_factory"]

    def test_missing_specs_is_partial(self):
        unit = unit_from_dict({"id": "stub", "displayName": "Stub"})
        assert unit.specs is None

    def test_missing_combat_is_malformed(self):
        data = {"id": "bad", "specs": {"economy": {"buildCost": 1}}}
        with pytest.raises(MalformedRecordError):
            unit_from_dict(data)

    def test_missing_id_is_malformed(self):
        with pytest.raises(MalformedRecordError):
            unit_from_dict({"displayName": "Nameless"})


def test_index_entry_from_dict():
    entry = index_entry_from_dict({
        "identifier": "tank_light_laser",
        "displayName": "Ant",
        "unitTypes": ["Land"],
        "source": "pa",
        "files": [{"path": "/pa/units/land/tank_light_laser.json", "source": "pa"}],
        "unit": UNIT_JSON,
    })
    assert entry.identifier == "tank_light_laser"
    assert entry.files[0].source == "pa"
    assert entry.unit.id == "tank_light_laser"


def test_metadata_defaults_to_folder_name():
    meta = metadata_from_dict({}, "Legion@2.0")
    assert meta.identifier == "Legion@2.0"
    assert meta.type == "base-game"
    assert meta.is_addon is False


def test_load_example_comparison():
    if not EXAMPLE_PATH.exists():
        pytest.skip("example.yaml not found")

    cs = load_comparison(str(EXAMPLE_PATH))
    assert cs.name == "Early army"
    assert len(cs.groups) == 2
    assert cs.groups[0].members[1] == ComparisonRefWithQuantity("MLA", "tank_light_laser", None, 2)
    assert cs.groups[1].members[0].quantity == 6


def test_save_and_reload_round_trip():
    cs = ComparisonSet(name="Round Trip", description="two groups", groups=[
        UnitGroup("A", [ComparisonRefWithQuantity("MLA", "tank", "1.0.0", 3)]),
        UnitGroup("B", [ComparisonRefWithQuantity("Legion", "bot")]),
    ])

    with tempfile.NamedTemporaryFile(suffix=".yaml", delete=False, mode="w") as f:
        tmppath = f.name

    try:
        save_comparison(cs, tmppath)
        loaded = load_comparison(tmppath)
        assert loaded.name == "Round Trip"
        assert [g.name for g in loaded.groups] == ["A", "B"]
        assert loaded.groups[0].members == cs.groups[0].members
        assert loaded.groups[1].members == cs.groups[1].members
    finally:
        Path(tmppath).unlink(missing_ok=True)


def test_unnamed_groups_get_default_names(tmp_path):
    path = tmp_path / "quick.yaml"
    path.write_text("groups:\n  - units:\n      - MLA/tank\n  - units:\n      - MLA/bot:2\n")
    cs = load_comparison(str(path))
    assert cs.name == "quick"
    assert [g.name for g in cs.groups] == ["Group 1", "Group 2"]


@pytest.mark.parametrize("quantity", ["0", "-3", "lots"])
def test_mapping_member_bad_quantity_falls_back_to_one(tmp_path, quantity):
    path = tmp_path / "mapped.yaml"
    path.write_text(
        "groups:\n"
        "  - units:\n"
        "      - faction: MLA\n"
        "        unit: tank\n"
        f"        quantity: {quantity}\n"
    )
    cs = load_comparison(str(path))
    assert cs.groups[0].members == [ComparisonRefWithQuantity("MLA", "tank", None, 1)]


def test_export_group_stats_json(tmp_path, tank):
    stats = aggregate_group([GroupMember(tank, 2, "MLA")])
    out = tmp_path / "stats.json"
    export_group_stats_json(stats, str(out))
    data = json.loads(out.read_text())
    assert data["total_hp"] == 400.0
    assert data["weapons"][0]["safe_name"] == "tank_laser"

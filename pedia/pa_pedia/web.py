"""
PA Pedia - Web API
===================
FastAPI server exposing faction listings, commander groups and comparisons.

Usage:
    python cli.py web [--port 8080]
"""

from dataclasses import asdict
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
import uvicorn

from pa_pedia.aggregation import aggregate_group, members_from_resolution
from pa_pedia.commanders import (
    RepresentativePolicy, group_commander_variants, hidden_variant_count,
    total_commander_count,
)
from pa_pedia.compare import compare_group_stats
from pa_pedia.comparison import format_comparison
from pa_pedia.config import FACTIONS_DIR, PORT
from pa_pedia.errors import MalformedRecordError, PediaError, TransientFetchError, UnitNotFoundError
from pa_pedia.faction_data import LocalFactionDataService
from pa_pedia.loader import UnitLoader
from pa_pedia.models import ComparisonValue, Directionality
from pa_pedia.refs import build_comparison_ref, parse_comparison_ref, parse_faction_ref
from pa_pedia.resolver import resolve_comparison

app = FastAPI(title="PA Pedia")

_loader: Optional[UnitLoader] = None


def get_loader() -> UnitLoader:
    global _loader
    if _loader is None:
        _loader = UnitLoader(LocalFactionDataService(FACTIONS_DIR))
    return _loader


def set_loader(loader: Optional[UnitLoader]):
    """Swap the loader behind the API (tests, alternate data roots)."""
    global _loader
    _loader = loader


# ---------------------------------------------------------------------------
# Pydantic models for request/response
# ---------------------------------------------------------------------------

class CompareRequest(BaseModel):
    refs: list[str] = []


class GroupIn(BaseModel):
    name: str = ""
    refs: list[str] = []


class CompareGroupsRequest(BaseModel):
    groups: list[GroupIn] = []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _http_error(e: PediaError) -> HTTPException:
    if isinstance(e, UnitNotFoundError):
        return HTTPException(404, str(e))
    if isinstance(e, MalformedRecordError):
        return HTTPException(422, str(e))
    if isinstance(e, TransientFetchError):
        return HTTPException(503, str(e))
    return HTTPException(500, str(e))


def _error_text(error: Optional[Exception]) -> Optional[str]:
    if error is None:
        return None
    return f"{type(error).__name__}: {error}"


def _comparison_value_out(cv: ComparisonValue) -> dict:
    return {
        "value": cv.value,
        "diff": cv.diff,
        "judgement": cv.judgement.value if cv.judgement else None,
    }


def _entry_out(entry) -> dict:
    return {
        "identifier": entry.identifier,
        "display_name": entry.display_name,
        "unit_types": entry.unit_types,
        "source": entry.source,
    }


# ---------------------------------------------------------------------------
# Factions
# ---------------------------------------------------------------------------

@app.get("/api/factions")
async def list_factions():
    factions = await get_loader().service.list_factions()
    return [asdict(f) for f in factions]


@app.get("/api/factions/{faction_ref}/units")
async def list_units(faction_ref: str):
    faction_id, version = parse_faction_ref(faction_ref)
    try:
        entries = await get_loader().load_faction(faction_id, version)
    except PediaError as e:
        raise _http_error(e)
    return [_entry_out(e) for e in entries]


@app.get("/api/factions/{faction_ref}/units/{unit_id}")
async def get_unit(faction_ref: str, unit_id: str):
    faction_id, version = parse_faction_ref(faction_ref)
    try:
        unit = await get_loader().load_unit(faction_id, unit_id, version)
    except PediaError as e:
        raise _http_error(e)
    return asdict(unit)


@app.get("/api/factions/{faction_ref}/commanders")
async def list_commanders(faction_ref: str, policy: str = "first_seen"):
    try:
        rep_policy = RepresentativePolicy(policy)
    except ValueError:
        raise HTTPException(400, f"Unknown policy: {policy}")

    faction_id, version = parse_faction_ref(faction_ref)
    try:
        entries = await get_loader().load_faction(faction_id, version)
    except PediaError as e:
        raise _http_error(e)

    result = group_commander_variants(entries, rep_policy)
    return {
        "total_commanders": total_commander_count(result),
        "hidden_variants": hidden_variant_count(result),
        "groups": [
            {
                "stats_hash": g.stats_hash,
                "representative": _entry_out(g.representative),
                "variants": [_entry_out(v) for v in g.variants],
            }
            for g in result.commanders
        ],
        "non_commanders": [_entry_out(e) for e in result.non_commanders],
    }


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------

@app.post("/api/compare")
async def compare_units(req: CompareRequest):
    """Resolve refs. Failures are reported per slot, never as an HTTP error."""
    refs = [parse_comparison_ref(r) for r in req.refs]
    resolution = await resolve_comparison(refs, get_loader())
    return {
        "any_loading": resolution.any_loading,
        "slots": [
            {
                "ref": build_comparison_ref(ref) if not ref.is_pending else ref.faction_id,
                "unit": asdict(slot.unit) if slot.unit is not None else None,
                "loading": slot.loading,
                "error": _error_text(slot.error),
            }
            for ref, slot in zip(refs, resolution.slots)
        ],
    }


@app.post("/api/compare/groups")
async def compare_groups(req: CompareGroupsRequest):
    """Aggregate each group and compare every group against the first one."""
    if not req.groups:
        raise HTTPException(400, "Provide at least one group")

    loader = get_loader()
    groups_out = []
    stats_list = []
    for i, group in enumerate(req.groups):
        refs = [parse_comparison_ref(r) for r in group.refs]
        resolution = await resolve_comparison(refs, loader)
        try:
            stats = aggregate_group(members_from_resolution(refs, resolution.units))
        except ValueError as e:
            raise HTTPException(400, str(e))
        stats_list.append(stats)
        groups_out.append({
            "name": group.name or f"Group {i + 1}",
            "stats": asdict(stats),
            "errors": {
                build_comparison_ref(ref): _error_text(err)
                for ref, err in zip(refs, resolution.errors) if err is not None
            },
        })

    rows = compare_group_stats(stats_list)
    return {
        "groups": groups_out,
        "rows": [
            {"field": r.attr, "label": r.label,
             "values": [_comparison_value_out(v) for v in r.values]}
            for r in rows
        ],
    }


@app.get("/api/compare/value")
async def compare_value(value: Optional[float] = None,
                        compare: Optional[float] = None,
                        policy: str = "neutral"):
    try:
        direction = Directionality(policy)
    except ValueError:
        raise HTTPException(400, f"Unknown policy: {policy}")
    return _comparison_value_out(format_comparison(value, compare, direction))


def start_server(port: int = PORT):
    """Start the uvicorn server."""
    print(f"Starting PA Pedia at http://localhost:{port}")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    start_server()

"""Tests for reference-counted asset URLs."""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from pa_pedia.assets import AssetUrlManager, data_url

from conftest import FakeService


def _manager():
    service = FakeService()
    service.assets[("MLA", "ui/tank.png")] = b"png-bytes"
    service.assets[("MLA", "ui/bot.png")] = b"bot-bytes"
    service.assets[("Legion", "ui/tank.png")] = b"legion-bytes"
    revoked = []
    counter = iter(range(100))
    manager = AssetUrlManager(
        service.read_asset,
        make_url=lambda path, data: f"blob:{next(counter)}",
        revoke_url=revoked.append,
    )
    return manager, revoked


def test_data_url():
    assert data_url("icon.png", b"abc") == "data:image/png;base64,YWJj"
    assert data_url("blob", b"") == "data:application/octet-stream;base64,"


def test_acquire_shares_one_url():
    manager, revoked = _manager()

    async def run():
        first = await manager.acquire("MLA", "ui/tank.png")
        second = await manager.acquire("MLA", "ui/tank.png")
        return first, second

    first, second = asyncio.run(run())
    assert first == second == "blob:0"
    assert manager.ref_count("MLA", "ui/tank.png") == 2
    assert len(manager) == 1


def test_revoked_when_last_holder_releases():
    manager, revoked = _manager()
    asyncio.run(manager.acquire("MLA", "ui/tank.png"))
    asyncio.run(manager.acquire("MLA", "ui/tank.png"))

    manager.release("MLA", "ui/tank.png")
    assert revoked == []
    manager.release("MLA", "ui/tank.png")
    assert revoked == ["blob:0"]
    assert len(manager) == 0

    # Releasing again is harmless
    manager.release("MLA", "ui/tank.png")
    assert revoked == ["blob:0"]


def test_missing_asset():
    manager, _ = _manager()
    assert asyncio.run(manager.acquire("MLA", "ui/none.png")) is None
    assert len(manager) == 0


def test_clear_faction():
    manager, revoked = _manager()

    async def run():
        await manager.acquire("MLA", "ui/tank.png")
        await manager.acquire("MLA", "ui/bot.png")
        await manager.acquire("Legion", "ui/tank.png")

    asyncio.run(run())
    manager.clear_faction("MLA")
    assert sorted(revoked) == ["blob:0", "blob:1"]
    assert manager.ref_count("Legion", "ui/tank.png") == 1

    manager.clear()
    assert len(manager) == 0
    assert len(revoked) == 3


def test_concurrent_acquire_counts_both():
    manager, revoked = _manager()

    async def run():
        return await asyncio.gather(
            manager.acquire("MLA", "ui/tank.png"),
            manager.acquire("MLA", "ui/tank.png"),
        )

    urls = asyncio.run(run())
    assert urls[0] == urls[1]
    assert manager.ref_count("MLA", "ui/tank.png") == 2

"""Tests for the chunk cache and region fetcher."""

import asyncio

import pytest

from conftest import FakeTransport, FakeWorld, make_tile
from owot_client import ClientConfig, ProtocolError, ReadTimeoutError, WorldClient
from owot_client.sync.cache import split_region


class TestSplitRegion:
    """Tests for split_region."""

    @pytest.mark.parametrize("bounds,max_area", [
        ((0, 0, 4, 4), 4),
        ((-3, -7, 60, 50), 2048),
        ((0, 0, 99, 0), 10),
        ((5, 5, 5, 5), 1),
    ])
    def test_exact_cover(self, bounds: tuple[int, int, int, int], max_area: int) -> None:
        min_x, min_y, max_x, max_y = bounds
        seen: list[tuple[int, int]] = []
        for sx0, sy0, sx1, sy1 in split_region(*bounds, max_area):
            assert (sx1 - sx0 + 1) * (sy1 - sy0 + 1) <= max_area
            seen.extend((x, y) for y in range(sy0, sy1 + 1) for x in range(sx0, sx1 + 1))
        expected = {(x, y) for y in range(min_y, max_y + 1) for x in range(min_x, max_x + 1)}
        assert len(seen) == len(expected)
        assert set(seen) == expected


class TestChunkCache:
    """Tests for ChunkCache reads."""

    @pytest.mark.asyncio
    async def test_get_chunk_fetches_once(self, client: WorldClient, transport: FakeTransport,
                                          world: FakeWorld) -> None:
        world.tiles[1, 2] = make_tile("hello")
        chunk = await client.get_chunk(1, 2)
        assert chunk.cell(0, 0).char == "h"
        assert transport.of_kind("fetch") == [{
            "kind": "fetch",
            "fetchRectangles": [{"minX": 1, "minY": 2, "maxX": 1, "maxY": 2}],
        }]

        again = await client.get_chunk(1, 2)
        assert again is chunk
        assert len(transport.of_kind("fetch")) == 1

    @pytest.mark.asyncio
    async def test_empty_chunk_cell_is_none(self, client: WorldClient) -> None:
        assert await client.get_cell(-40, 13) is None
        chunk = client.try_get_chunk(-3, 1)
        assert chunk is not None and chunk.is_empty

    @pytest.mark.asyncio
    async def test_get_cell(self, client: WorldClient, world: FakeWorld) -> None:
        color = [0] * 128
        color[5 * 16 + 5] = 0x445566
        world.tiles[2, -1] = make_tile(" " * (5 * 16 + 5) + "Q", color=color)
        cell = await client.get_cell(37, -3)
        assert cell.char == "Q"
        assert cell.fg == 0x445566

    @pytest.mark.asyncio
    async def test_try_get_chunk_does_not_fetch(self, client: WorldClient, transport: FakeTransport) -> None:
        assert client.try_get_chunk(0, 0) is None
        assert transport.of_kind("fetch") == []

    @pytest.mark.asyncio
    async def test_tile_update_resolves_pending_read(self, client: WorldClient, transport: FakeTransport,
                                                     world: FakeWorld) -> None:
        world.silent = True
        read = asyncio.ensure_future(client.get_chunk(0, 0))
        await asyncio.sleep(0)
        assert not read.done()

        transport.feed({"kind": "tileUpdate", "tiles": {"0,0": make_tile("new")}})
        chunk = await asyncio.wait_for(read, 1)
        assert chunk.cell(0, 0).char == "n"
        assert client.cache.pending_reads == 0

    @pytest.mark.asyncio
    async def test_tile_update_replaces_snapshot(self, client: WorldClient, transport: FakeTransport,
                                                 world: FakeWorld) -> None:
        world.tiles[0, 0] = make_tile("old")
        await client.get_chunk(0, 0)

        updated = asyncio.get_running_loop().create_future()
        client.events.on("message", lambda message: updated.set_result(message)
                         if message["kind"] == "tileUpdate" else None)
        transport.feed({"kind": "tileUpdate", "tiles": {"0,0": make_tile("new")}})
        await asyncio.wait_for(updated, 1)

        assert client.try_get_chunk(0, 0).cell(0, 0).char == "n"

    @pytest.mark.asyncio
    async def test_load_region_single_request(self, client: WorldClient, transport: FakeTransport) -> None:
        await client.load_region(2, 1, -1, 0)
        [fetch] = transport.of_kind("fetch")
        assert fetch["fetchRectangles"] == [{"minX": -1, "minY": 0, "maxX": 2, "maxY": 1}]
        assert len(client.cache) == 8
        assert (2, 1) in client.cache

    @pytest.mark.asyncio
    async def test_load_region_splits_large_rectangles(self, transport: FakeTransport) -> None:
        async def connector(url: str, headers: dict) -> FakeTransport:
            return transport

        config = ClientConfig(max_fetch_area=4, region_pacing=0)
        async with WorldClient("w", config=config, connector=connector, on_close=lambda error: None) as client:
            await client.load_region(0, 0, 4, 4)

        covered = []
        for fetch in transport.of_kind("fetch"):
            [rect] = fetch["fetchRectangles"]
            assert (rect["maxX"] - rect["minX"] + 1) * (rect["maxY"] - rect["minY"] + 1) <= 4
            covered.extend(
                (x, y)
                for y in range(rect["minY"], rect["maxY"] + 1)
                for x in range(rect["minX"], rect["maxX"] + 1)
            )
        assert sorted(covered) == sorted((x, y) for y in range(5) for x in range(5))
        assert len(client.cache) == 25

    @pytest.mark.asyncio
    async def test_read_timeout(self, transport: FakeTransport, world: FakeWorld) -> None:
        async def connector(url: str, headers: dict) -> FakeTransport:
            return transport

        world.silent = True
        config = ClientConfig(read_timeout=0.05)
        async with WorldClient("w", config=config, connector=connector, on_close=lambda error: None) as client:
            with pytest.raises(ReadTimeoutError) as excinfo:
                await client.get_chunk(4, 4)
            assert excinfo.value.chunks == [(4, 4)]
            assert client.cache.pending_reads == 0

    @pytest.mark.asyncio
    async def test_malformed_tile_fails_the_read(self, client: WorldClient, transport: FakeTransport,
                                                 world: FakeWorld) -> None:
        world.silent = True
        read = asyncio.ensure_future(client.get_chunk(0, 0))
        await asyncio.sleep(0)

        transport.feed({"kind": "fetch", "tiles": {"bad": None, "0,0": "garbage", "0,1": make_tile("ok")}})
        with pytest.raises(ProtocolError):
            await asyncio.wait_for(read, 1)
        assert client.try_get_chunk(0, 0) is None
        assert client.try_get_chunk(1, 0) is not None
        assert client.cache.pending_reads == 0
        assert client.is_ready

    @pytest.mark.asyncio
    async def test_set_update_region(self, client: WorldClient, transport: FakeTransport) -> None:
        await client.set_update_region(-2, -2, 2, 2)
        [boundary] = transport.of_kind("boundary")
        assert boundary["minX"] == -2
        assert boundary["maxY"] == 2
        assert (boundary["centerX"], boundary["centerY"]) == (0, 0)

    @pytest.mark.asyncio
    async def test_invalidate(self, client: WorldClient) -> None:
        await client.get_chunk(0, 0)
        await client.get_chunk(1, 0)
        client.cache.invalidate(0, 0)
        assert (0, 0) not in client.cache
        assert (1, 0) in client.cache
        client.cache.invalidate()
        assert len(client.cache) == 0

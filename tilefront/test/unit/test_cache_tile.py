# This file is part of the TileFront project.
# Copyright (C) 2026 The TileFront Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import threading
import time

import pytest

from tilefront.cache.base import CacheBackendError, TileCacheBase
from tilefront.cache.tile import ExpirationPolicy, Tile, TileManager
from tilefront.grid import OutOfRangeZoom, TileOutOfBounds
from tilefront.grid.tile_grid import tile_grid
from tilefront.image import ImageSource
from tilefront.image.opts import FormatModifier, FormatModifiers, ImageOptions
from tilefront.paramfilter import (
    FloatParameterRule,
    ParameterFilters,
    ParameterRejected,
)
from tilefront.source import BackendTimeout, BackendUnreachable
from tilefront.source.wms import FetchResult
from tilefront.test.image import (
    create_image,
    create_tmp_image_buf,
    is_jpeg,
    is_png,
)
from tilefront.tilefilter import RequestFiltered, RequestFilterChain, ZoomLevelFilter


class MockSource(object):
    def __init__(self, error=None, expiration=None, wait=None, color=(0, 0, 255)):
        self.error = error
        self.color = color
        self.expiration = expiration
        self.wait = wait
        self.queries = []
        self._lock = threading.Lock()

    @property
    def calls(self):
        return len(self.queries)

    def fetch(self, query, timeout=None, save_expiration=False):
        with self._lock:
            self.queries.append(query)
        if self.wait is not None:
            self.wait.wait()
        if self.error is not None:
            raise self.error
        img = create_image(query.size, color=self.color)
        return FetchResult(ImageSource(img, image_opts=ImageOptions(format='image/png')),
                           expiration=self.expiration if save_expiration else None,
                           url='http://localhost/service')


class MockCache(TileCacheBase):
    def __init__(self):
        self.stored = {}
        self.loaded = []

    def _key(self, tile):
        return (tile.coord, tile.params_key, str(tile.format))

    def load_tile(self, tile):
        self.loaded.append(tile.coord)
        stored = self.stored.get(self._key(tile))
        if stored is None:
            return False
        tile.source = stored.source
        tile.timestamp = stored.timestamp
        tile.expires = stored.expires
        tile.backend_expires = stored.backend_expires
        return True

    def store_tile(self, tile):
        self.stored[self._key(tile)] = tile
        tile.stored = True
        return True

    def is_cached(self, tile):
        return self._key(tile) in self.stored


@pytest.fixture
def grid():
    return tile_grid(srs='EPSG:3857', zoom_stop=14, origin='sw')


@pytest.fixture
def source():
    return MockSource()


@pytest.fixture
def tile_mgr(grid, source):
    return TileManager(grid, source, format='image/png', meta_size=(2, 2))


class TestTileManager(object):
    def test_load_tile(self, tile_mgr, source):
        tile = tile_mgr.load_tile((1, 1, 3))
        assert tile.coord == (1, 1, 3)
        assert is_png(tile.source_buffer())
        assert tile.source_image().size == (256, 256)
        assert source.calls == 1
        query = source.queries[0]
        assert query.size == (512, 512)
        assert query.format == 'image/png'

    def test_tiles_of_same_meta_tile(self, tile_mgr, source):
        for tile_coord in [(0, 0, 3), (1, 0, 3), (0, 1, 3), (1, 1, 3)]:
            tile_mgr.load_tile(tile_coord)
        assert source.calls == 1
        tile_mgr.load_tile((2, 0, 3))
        assert source.calls == 2

    def test_concurrent_requests(self, tile_mgr, source):
        source.wait = threading.Event()
        tiles = []
        errors = []

        def load(tile_coord):
            try:
                tiles.append(tile_mgr.load_tile(tile_coord))
            except Exception as ex:
                errors.append(ex)

        coords = [(4 + i % 2, 6 + (i // 2) % 2, 5) for i in range(50)]
        threads = [threading.Thread(target=load, args=(c, )) for c in coords]
        for t in threads:
            t.start()
        time.sleep(0.1)
        source.wait.set()
        for t in threads:
            t.join(10)
        assert not errors
        assert len(tiles) == 50
        assert source.calls == 1

        data = {}
        for tile in tiles:
            data.setdefault(tile.coord, set()).add(tile.source_buffer().getvalue())
        assert sorted(data) == [(4, 6, 5), (4, 7, 5), (5, 6, 5), (5, 7, 5)]
        for coord, values in data.items():
            assert len(values) == 1, coord

    def test_out_of_grid(self, tile_mgr, source):
        with pytest.raises(OutOfRangeZoom):
            tile_mgr.load_tile((0, 0, 15))
        with pytest.raises(TileOutOfBounds):
            tile_mgr.load_tile((8, 0, 3))
        assert source.calls == 0

    def test_request_filter(self, grid, source):
        tile_mgr = TileManager(grid, source, meta_size=(2, 2),
                               request_filters=RequestFilterChain([ZoomLevelFilter('zoom', 12, 13)]))
        with pytest.raises(RequestFiltered):
            tile_mgr.load_tile((0, 0, 10))
        assert source.calls == 0
        tile_mgr.load_tile((0, 0, 12))
        assert source.calls == 1

    def test_backend_failure(self, tile_mgr, source):
        source.error = BackendUnreachable('all backend requests failed')
        with pytest.raises(BackendUnreachable):
            tile_mgr.load_tile((0, 0, 3))
        assert source.calls == 1
        # failed meta tiles are not kept, the next request fetches again
        source.error = None
        tile = tile_mgr.load_tile((0, 0, 3))
        assert not tile.is_missing()
        assert source.calls == 2

    def test_failure_for_all_waiters(self, tile_mgr, source):
        source.error = BackendUnreachable('all backend requests failed')
        source.wait = threading.Event()
        errors = []

        def load():
            try:
                tile_mgr.load_tile((0, 0, 3))
            except BackendUnreachable as ex:
                errors.append(ex)

        threads = [threading.Thread(target=load) for _ in range(5)]
        for t in threads:
            t.start()
        time.sleep(0.1)
        source.wait.set()
        for t in threads:
            t.join(10)
        assert len(errors) == 5
        assert source.calls == 1
        # each waiter gets its own exception, chained to the backend error
        assert len(set(id(ex) for ex in errors)) == 5
        cause = errors[0].__cause__
        assert isinstance(cause, BackendUnreachable)
        assert all(ex.__cause__ is cause for ex in errors)
        assert all(str(ex) == 'all backend requests failed' for ex in errors)

    def test_deadline(self, tile_mgr, source):
        source.wait = threading.Event()
        with pytest.raises(BackendTimeout):
            tile_mgr.load_tile((0, 0, 3), timeout=0.1)
        assert source.calls == 1
        # the fetch continues for later requests
        source.wait.set()
        tile = tile_mgr.load_tile((1, 1, 3), timeout=5)
        assert not tile.is_missing()
        assert source.calls == 1

    def test_format_modifier(self, grid, source):
        modifiers = FormatModifiers([
            FormatModifier('image/jpeg', request_format='image/png', bgcolor='0xff0000'),
        ])
        tile_mgr = TileManager(grid, source, meta_size=(2, 2), format_modifiers=modifiers)
        tile = tile_mgr.load_tile((0, 0, 3), format='image/jpeg')
        assert is_jpeg(tile.source_buffer())
        query = source.queries[0]
        assert query.format == 'image/png'
        assert query.params['bgcolor'] == '0xff0000'

        # other format, other backend request
        tile = tile_mgr.load_tile((0, 0, 3), format='image/png')
        assert is_png(tile.source_buffer())
        assert source.calls == 2

    def test_params(self, grid, source):
        param_filters = ParameterFilters([
            FloatParameterRule('elevation', [1.0, 2.0], threshold=0.2),
        ])
        tile_mgr = TileManager(grid, source, meta_size=(2, 2), param_filters=param_filters)
        tile = tile_mgr.load_tile((0, 0, 3), params={'elevation': '1.1'})
        assert tile.params_key == 'ELEVATION=1.0'
        assert source.queries[0].params == {'ELEVATION': '1.0'}

        # same normalized value, same meta tile
        tile_mgr.load_tile((1, 0, 3), params={'ELEVATION': '0.9'})
        assert source.calls == 1
        tile_mgr.load_tile((1, 0, 3), params={'ELEVATION': '2'})
        assert source.calls == 2

        with pytest.raises(ParameterRejected):
            tile_mgr.load_tile((0, 0, 3), params={'elevation': '1.5'})
        assert source.calls == 2

    def test_transparent_source(self, grid):
        source = MockSource(color=(255, 0, 0, 0))
        tile_mgr = TileManager(grid, source, format='image/png', meta_size=(2, 2),
                               image_opts=ImageOptions(transparent=True))
        tile = tile_mgr.load_tile((0, 0, 3))
        assert tile.source_image().convert('RGBA').getpixel((0, 0))[3] == 0

    def test_transparent_source_unpaletted(self, grid, default_base_config):
        default_base_config.image.paletted = False
        source = MockSource(color=(255, 0, 0, 0))
        tile_mgr = TileManager(grid, source, format='image/png', meta_size=(2, 2),
                               image_opts=ImageOptions(transparent=True))
        tile = tile_mgr.load_tile((0, 0, 3))
        assert tile.source_image().convert('RGBA').getpixel((0, 0))[3] == 0

    def test_opaque_source(self, grid):
        source = MockSource(color=(255, 0, 0, 0))
        tile_mgr = TileManager(grid, source, format='image/png', meta_size=(2, 2))
        tile = tile_mgr.load_tile((0, 0, 3))
        assert tile.source_image().convert('RGBA').getpixel((0, 0))[3] == 255

    def test_modifier_transparency(self, grid):
        source = MockSource(color=(255, 0, 0, 0))
        modifiers = FormatModifiers([FormatModifier('image/png', transparent=False)])
        tile_mgr = TileManager(grid, source, format='image/png', meta_size=(2, 2),
                               format_modifiers=modifiers,
                               image_opts=ImageOptions(transparent=True))
        tile = tile_mgr.load_tile((0, 0, 3))
        assert tile.source_image().convert('RGBA').getpixel((0, 0))[3] == 255
        assert source.queries[0].params['transparent'] == 'false'

    def test_meta_tile_lru(self, grid, source):
        tile_mgr = TileManager(grid, source, meta_size=(2, 2), max_meta_tiles=2)
        tile_mgr.load_tile((0, 0, 3))
        tile_mgr.load_tile((2, 0, 3))
        tile_mgr.load_tile((4, 0, 3))
        assert source.calls == 3
        tile_mgr.load_tile((4, 0, 3))
        assert source.calls == 3
        # evicted
        tile_mgr.load_tile((0, 0, 3))
        assert source.calls == 4


class TestTileManagerExpiration(object):
    def test_backend_expiration(self, grid, source):
        source.expiration = 3600
        tile_mgr = TileManager(grid, source, meta_size=(2, 2),
                               expiration=ExpirationPolicy(expire_cache='backend',
                                                           expire_clients='backend'))
        tile = tile_mgr.load_tile((0, 0, 3))
        assert tile.expires == 3600
        assert tile.client_expires == 3600

    def test_fixed_expiration(self, grid, source):
        source.expiration = 3600
        tile_mgr = TileManager(grid, source, meta_size=(2, 2),
                               expiration=ExpirationPolicy(expire_cache=60, expire_clients=30))
        tile = tile_mgr.load_tile((0, 0, 3))
        assert tile.expires == 60
        assert tile.client_expires == 30
        # backend expiration is not requested
        assert tile_mgr.expiration.save_expiration is False
        assert [m.expiration for m in tile_mgr._meta_tiles.values()] == [None]

    def test_expired_meta_tile(self, grid, source):
        tile_mgr = TileManager(grid, source, meta_size=(2, 2),
                               expiration=ExpirationPolicy(expire_cache=60))
        tile_mgr.load_tile((0, 0, 3))
        for meta_tile in tile_mgr._meta_tiles.values():
            meta_tile.ready_time -= 61
        tile_mgr.load_tile((0, 0, 3))
        assert source.calls == 2

    def test_invalid_expiration(self):
        with pytest.raises(ValueError):
            ExpirationPolicy(expire_cache=-1)


class TestTileManagerCache(object):
    def test_store_tiles(self, grid, source):
        cache = MockCache()
        tile_mgr = TileManager(grid, source, meta_size=(2, 2), cache=cache,
                               expiration=ExpirationPolicy(expire_cache=600))
        tile_mgr.load_tile((0, 0, 3))
        assert len(cache.stored) == 4
        for tile in cache.stored.values():
            assert tile.timestamp is not None
            assert tile.expires == 600
            assert is_png(tile.source_buffer())

    def test_load_from_cache(self, grid, source):
        cache = MockCache()
        tile_mgr = TileManager(grid, source, meta_size=(2, 2), cache=cache)
        tile_mgr.load_tile((0, 0, 3))
        assert source.calls == 1

        tile_mgr = TileManager(grid, source, meta_size=(2, 2), cache=cache)
        tile = tile_mgr.load_tile((1, 1, 3))
        assert not tile.is_missing()
        assert source.calls == 1

    def test_backend_client_expiration(self, grid, source):
        source.expiration = 3600
        cache = MockCache()
        expiration = ExpirationPolicy(expire_cache=60, expire_clients='backend')
        tile_mgr = TileManager(grid, source, meta_size=(2, 2), cache=cache,
                               expiration=expiration)
        tile = tile_mgr.load_tile((0, 0, 3))
        assert tile.expires == 60
        assert tile.client_expires == 3600
        for stored in cache.stored.values():
            assert stored.expires == 60
            assert stored.backend_expires == 3600

        tile_mgr = TileManager(grid, source, meta_size=(2, 2), cache=cache,
                               expiration=expiration)
        tile = tile_mgr.load_tile((1, 1, 3))
        assert source.calls == 1
        assert tile.expires == 60
        assert tile.client_expires == 3600

    def test_expired_cached_tile(self, grid, source):
        cache = MockCache()
        tile = Tile((0, 0, 3), ImageSource(create_tmp_image_buf((256, 256)),
                                           image_opts=ImageOptions(format='image/png')),
                    expires=60, format='image/png')
        tile.timestamp = time.time() - 120
        cache.store_tile(tile)

        tile_mgr = TileManager(grid, source, meta_size=(2, 2), cache=cache)
        tile_mgr.load_tile((0, 0, 3))
        assert source.calls == 1

    def test_broken_cache(self, grid, source):
        class BrokenCache(MockCache):
            def load_tile(self, tile):
                raise CacheBackendError('connection refused')

            def store_tile(self, tile):
                raise CacheBackendError('connection refused')

        tile_mgr = TileManager(grid, source, meta_size=(2, 2), cache=BrokenCache())
        tile = tile_mgr.load_tile((0, 0, 3))
        assert is_png(tile.source_buffer())
        assert source.calls == 1

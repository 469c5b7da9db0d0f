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

import pytest

from tilefront.grid import TileOutOfBounds
from tilefront.grid.meta_grid import MetaGrid, MetaTileAddress
from tilefront.grid.tile_grid import tile_grid
from tilefront.util.bbox import bbox_equals


class TestMetaGridSW(object):
    def setup_method(self):
        self.grid = tile_grid(srs='EPSG:3857', zoom_stop=12, origin='sw')
        self.mgrid = MetaGrid(self.grid, meta_size=(3, 3))

    def test_address(self):
        assert self.mgrid.meta_tile_address((4, 5, 5)) == MetaTileAddress(3, 3, 5, 3, 3)
        assert self.mgrid.meta_tile_address((3, 3, 5)) == MetaTileAddress(3, 3, 5, 3, 3)

    def test_address_clipped_at_grid_border(self):
        # 32 tiles at level 5, last meta tile starts at 30
        assert self.mgrid.meta_tile_address((31, 31, 5)) == MetaTileAddress(30, 30, 5, 2, 2)

    def test_address_small_level(self):
        assert self.mgrid.meta_tile_address((1, 0, 1)) == MetaTileAddress(0, 0, 1, 2, 2)

    def test_same_address_for_all_tiles(self):
        address = self.mgrid.meta_tile_address((7, 7, 6))
        for x in range(6, 9):
            for y in range(6, 9):
                assert self.mgrid.meta_tile_address((x, y, 6)) == address

    def test_invalid_tile(self):
        with pytest.raises(TileOutOfBounds):
            self.mgrid.meta_tile_address((32, 0, 5))

    def test_tile_list(self):
        address = self.mgrid.meta_tile_address((4, 4, 5))
        assert self.mgrid.tile_list(address) == [
            (3, 5, 5), (4, 5, 5), (5, 5, 5),
            (3, 4, 5), (4, 4, 5), (5, 4, 5),
            (3, 3, 5), (4, 3, 5), (5, 3, 5),
        ]

    def test_tile_index(self):
        address = self.mgrid.meta_tile_address((4, 4, 5))
        tiles = self.mgrid.tile_list(address)
        for i, tile_coord in enumerate(tiles):
            assert self.mgrid.tile_index(address, tile_coord) == i

    def test_meta_bbox_covers_tiles(self):
        address = self.mgrid.meta_tile_address((4, 4, 5))
        minx = self.grid.tile_bbox((3, 3, 5))[0]
        miny = self.grid.tile_bbox((3, 3, 5))[1]
        maxx = self.grid.tile_bbox((5, 5, 5))[2]
        maxy = self.grid.tile_bbox((5, 5, 5))[3]
        assert bbox_equals(self.mgrid.meta_bbox(address), (minx, miny, maxx, maxy))

    def test_meta_size_px(self):
        address = self.mgrid.meta_tile_address((31, 31, 5))
        assert self.mgrid.meta_size_px(address) == (512, 512)


class TestMetaGridNW(object):
    def setup_method(self):
        self.grid = tile_grid(srs='EPSG:3857', zoom_stop=12, origin='nw')
        self.mgrid = MetaGrid(self.grid, meta_size=(2, 2), meta_buffer=10)

    def test_tile_list(self):
        address = self.mgrid.meta_tile_address((3, 5, 4))
        assert self.mgrid.tile_list(address) == [
            (2, 4, 4), (3, 4, 4),
            (2, 5, 4), (3, 5, 4),
        ]

    def test_tiles_pattern(self):
        address = self.mgrid.meta_tile_address((3, 5, 4))
        assert self.mgrid.tiles_pattern(address) == [
            ((2, 4, 4), (10, 10)), ((3, 4, 4), (266, 10)),
            ((2, 5, 4), (10, 266)), ((3, 5, 4), (266, 266)),
        ]

    def test_buffered_bbox(self):
        address = self.mgrid.meta_tile_address((0, 0, 2))
        res = self.grid.resolution(2)
        unbuffered = self.mgrid.meta_bbox(address, buffered=False)
        buffered = self.mgrid.meta_bbox(address)
        assert buffered[0] == pytest.approx(unbuffered[0] - 10 * res)
        assert buffered[3] == pytest.approx(unbuffered[3] + 10 * res)
        # the buffer extends beyond the grid bbox
        assert buffered[0] < self.grid.bbox[0]

    def test_meta_size_px(self):
        address = self.mgrid.meta_tile_address((0, 0, 3))
        assert self.mgrid.meta_size_px(address) == (532, 532)


def test_invalid_meta_size():
    grid = tile_grid(srs='EPSG:3857')
    with pytest.raises(ValueError):
        MetaGrid(grid, meta_size=(0, 2))
    with pytest.raises(ValueError):
        MetaGrid(grid, meta_size=(2, 2), meta_buffer=-1)

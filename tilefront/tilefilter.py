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

"""
Request filters for tiles (zoom levels, raster masks).

Request filters are evaluated before any backend request. A rejected
tile is answered with a blank tile.
"""
import os
import threading

from PIL import Image

from tilefront.query import MapQuery
from tilefront.source import BackendError

import logging
log = logging.getLogger('tilefront.tilefilter')

ADMIT = 'admit'
REJECT = 'reject'
DEFER = 'defer'


class RequestFiltered(Exception):
    """
    The tile was rejected by a request filter. This is not an error,
    the request should be answered with a blank tile.
    """
    def __init__(self, filter_name, tile_coord=None):
        Exception.__init__(self, 'tile %r rejected by filter %s' % (tile_coord, filter_name))
        self.filter_name = filter_name
        self.tile_coord = tile_coord


class ZoomLevelFilter(object):
    """
    Rejects all tiles outside of ``zoom_start``-``zoom_stop`` (inclusive).
    """
    def __init__(self, name, zoom_start=None, zoom_stop=None):
        self.name = name
        self.zoom_start = zoom_start
        self.zoom_stop = zoom_stop

    def evaluate(self, tile_coord):
        z = tile_coord[2]
        if self.zoom_start is not None and z < self.zoom_start:
            return REJECT
        if self.zoom_stop is not None and z > self.zoom_stop:
            return REJECT
        return ADMIT

    def __repr__(self):
        return 'ZoomLevelFilter(%r, %r, %r)' % (self.name, self.zoom_start, self.zoom_stop)


class FileMaskSource(object):
    """
    Loads mask images from ``<directory>/<name>_<grid>_<level>.<ext>``.
    """
    def __init__(self, directory, name, grid_name, ext='png'):
        self.directory = directory
        self.name = name
        self.grid_name = grid_name
        self.ext = ext

    def filename(self, level):
        return os.path.join(self.directory, '%s_%s_%d.%s' % (
            self.name, self.grid_name, level, self.ext))

    def load(self, grid, level):
        filename = self.filename(level)
        if not os.path.exists(filename):
            log.info('no mask file %s', filename)
            return None
        try:
            img = Image.open(filename)
            img.load()
        except (OSError, ValueError, SyntaxError) as ex:
            log.warning('unable to load mask %s: %s', filename, ex)
            return None
        return img


class WMSMaskSource(object):
    """
    Requests mask images from a WMS. The mask covers the data area of the
    grid with one pixel for each tile.
    """
    def __init__(self, source, format='image/png'):
        self.source = source
        self.format = format

    def load(self, grid, level):
        minx, miny, maxx, maxy = grid.data_tile_range(level)
        bbox = grid._tiles_bbox([(minx, miny, level), (maxx, maxy, level)])
        size = (maxx - minx + 1, maxy - miny + 1)
        query = MapQuery(bbox, size, grid.srs, self.format)
        try:
            result = self.source.fetch(query)
            return result.image.as_image()
        except BackendError as ex:
            log.warning('unable to request mask for level %d: %s', level, ex)
            return None


def _mask_band(img):
    if img.mode in ('RGBA', 'LA', 'PA'):
        return img.getchannel('A')
    if img.mode == 'P' and 'transparency' in img.info:
        return img.convert('RGBA').getchannel('A')
    return img.convert('L')


class RasterMaskFilter(object):
    """
    Rejects tiles with a zero/transparent pixel in the mask image of the
    tile level. Each mask pixel stands for one tile of the grid's data area
    (first row is the top row).

    Levels below ``zoom_start`` are deferred to the other filters,
    levels above ``zoom_stop`` use the mask of ``zoom_stop``.
    """
    def __init__(self, name, grid, mask_source, zoom_start=0, zoom_stop=None,
                 preload=False):
        self.name = name
        self.grid = grid
        self.mask_source = mask_source
        self.zoom_start = zoom_start
        self.zoom_stop = zoom_stop if zoom_stop is not None else grid.zoom_stop
        self._masks = {}
        self._level_locks = {}
        self._lock = threading.Lock()
        if preload:
            self.preload()

    def preload(self):
        for level in range(self.zoom_start, self.zoom_stop + 1):
            self._mask(level)

    def _mask(self, level):
        if level in self._masks:
            return self._masks[level]
        # loading one level does not block the other levels
        with self._level_lock(level):
            if level not in self._masks:
                img = self.mask_source.load(self.grid, level)
                self._masks[level] = _mask_band(img) if img is not None else None
            return self._masks[level]

    def _level_lock(self, level):
        with self._lock:
            return self._level_locks.setdefault(level, threading.Lock())

    def evaluate(self, tile_coord):
        x, y, z = tile_coord
        minx, miny, maxx, maxy = self.grid.data_tile_range(z)
        if not (minx <= x <= maxx and miny <= y <= maxy):
            return REJECT

        if z < self.zoom_start:
            return DEFER

        level = min(z, self.zoom_stop)
        shift = z - level
        mask = self._mask(level)
        if mask is None:
            return DEFER

        x, y = x >> shift, y >> shift
        minx, miny, maxx, maxy = self.grid.data_tile_range(level)
        px = x - minx
        if self.grid.flipped_y_axis:
            py = y - miny
        else:
            py = maxy - y
        if not (0 <= px < mask.size[0] and 0 <= py < mask.size[1]):
            log.warning('mask of %s for level %d does not cover tile %r',
                        self.name, level, tile_coord)
            return DEFER

        if mask.getpixel((px, py)) == 0:
            return REJECT
        return ADMIT

    def __repr__(self):
        return 'RasterMaskFilter(%r, %r, %r)' % (self.name, self.zoom_start, self.zoom_stop)


class RequestFilterChain(object):
    """
    Evaluates request filters in the declared order. The first rejecting
    filter stops the evaluation.
    """
    def __init__(self, filters=None):
        self.filters = list(filters or [])

    def apply(self, tile_coord):
        """
        Returns `ADMIT` if one filter admitted the tile, otherwise `DEFER`.

        :raises RequestFiltered: if one filter rejected the tile
        """
        result = DEFER
        for f in self.filters:
            decision = f.evaluate(tile_coord)
            if decision == REJECT:
                log.debug('tile %r rejected by %s', tile_coord, f.name)
                raise RequestFiltered(f.name, tile_coord)
            if decision == ADMIT:
                result = ADMIT
        return result

    def __bool__(self):
        return bool(self.filters)

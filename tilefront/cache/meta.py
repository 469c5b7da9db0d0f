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
Meta tiles: one backend request for a block of tiles.

A `MetaTile` runs through the states ``empty -> fetching -> ready|failed``.
The tiles are cropped once, after the transition to ``ready`` the meta tile
is not modified anymore and can be shared between threads.
"""
import copy
import threading
import time

from tilefront.image import CropOutOfBounds, img_to_buf
from tilefront.image.tile import split_meta_tiles
from tilefront.query import MapQuery

import logging
log = logging.getLogger('tilefront.cache.meta')

EMPTY = 'empty'
FETCHING = 'fetching'
READY = 'ready'
FAILED = 'failed'


class MetaTileNotReady(Exception):
    pass


class MetaTile(object):
    """
    :param address: the `MetaTileAddress`
    :param tile_coords: all tiles of the meta tile, row-wise from the
        upper-left tile (see `MetaGrid.tile_list`)
    """
    def __init__(self, address, tile_coords):
        self.address = address
        self.tile_coords = tuple(tile_coords)
        if len(self.tile_coords) != address.width * address.height:
            raise ValueError('%d tiles for meta tile %r' % (len(self.tile_coords), address))
        self.state = EMPTY
        self.url = None
        self.error = None
        self.ready_time = None
        self._image = None
        self._tiles = None
        self._expiration = None
        self._lock = threading.Lock()
        self._done = threading.Event()

    @property
    def expiration(self):
        """
        The expiration in seconds from the backend response (or the
        default expiration), ``None`` if not requested.
        """
        return self._expiration

    @property
    def image(self):
        return self._image

    def request_raster(self, meta_grid, source, request_format, dimensions=None,
                       save_expiration=False, timeout=None):
        """
        Request the meta tile image from `source` and split it into tiles.
        Only the first call requests the image, all other calls wait for
        this request and return the same result.

        :param dimensions: additional parameters for the backend request
        :raises SourceError: if the request failed (again for each call)
        """
        with self._lock:
            fetch = self.state == EMPTY
            if fetch:
                self.state = FETCHING

        if not fetch:
            self._done.wait()
            if self.state == FAILED:
                self.raise_error()
            return

        bbox = meta_grid.meta_bbox(self.address)
        size = meta_grid.meta_size_px(self.address)
        query = MapQuery(bbox, size, meta_grid.grid.srs, request_format, params=dimensions)
        try:
            result = source.fetch(query, timeout=timeout, save_expiration=save_expiration)
            self._image = result.image
            self._expiration = result.expiration
            self.url = result.url
            self.split_into_tiles(meta_grid)
        except Exception as ex:
            self._finish(FAILED, error=ex)
            raise
        self._finish(READY)

    def _finish(self, state, error=None):
        with self._lock:
            self.state = state
            self.error = error
            if state == READY:
                self.ready_time = time.time()
        self._done.set()

    def wait(self, timeout=None):
        """
        Wait until the meta tile is ready or failed.
        Returns ``False`` if the `timeout` (in seconds) elapsed before.
        """
        return self._done.wait(timeout)

    def raise_error(self):
        """
        Raise the error of the failed request. Each call raises a copy
        chained to the stored error, the stored error keeps its traceback.
        """
        raise copy.copy(self.error) from self.error

    def split_into_tiles(self, meta_grid):
        """
        Split the image into tiles, ordered like `tile_coords`. The result is
        computed only once. Tiles that are not inside the image are
        `CropOutOfBounds` errors, instead of an `ImageSource`.
        """
        with self._lock:
            if self._tiles is None:
                if self._image is None:
                    raise MetaTileNotReady('meta tile %r has no image' % (self.address, ))
                self._tiles = split_meta_tiles(self._image.as_image(),
                                               meta_grid.tiles_pattern(self.address),
                                               meta_grid.grid.tile_size,
                                               self._image.image_opts)
            return self._tiles

    def write_tile(self, index, image_opts, out=None):
        """
        Encode the tile at `index` with `image_opts`.

        :param out: file-like object for the encoded tile
        :returns: the encoded tile as file-like object
        :raises MetaTileNotReady: if the meta tile is not ready
        :raises CropOutOfBounds: if this tile is not inside the image
        :raises EncodeFailed: if the tile could not be encoded
        """
        if self.state != READY:
            raise MetaTileNotReady('meta tile %r is %s' % (self.address, self.state))
        tile = self._tiles[index]
        if isinstance(tile, CropOutOfBounds):
            raise tile
        buf = img_to_buf(tile.as_image(), image_opts)
        if out is not None:
            out.write(buf.getvalue())
        return buf

    def is_expired(self, max_age, now=None):
        """
        ``True`` if the meta tile is ready for longer than `max_age` seconds.
        """
        if max_age is None or self.ready_time is None:
            return False
        if now is None:
            now = time.time()
        return self.ready_time + max_age < now

    def __repr__(self):
        return 'MetaTile(%r, state=%s)' % (self.address, self.state)

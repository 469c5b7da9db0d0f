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
Tile creation with meta tiles (filters, backend requests, caching).

.. digraph:: Schematic Call Graph

    ranksep = 0.1;
    node [shape="box", height="0", width="0"]

    tl  [label="TileLayer"]
    tm  [label="TileManager"];
    rf  [label="RequestFilterChain"];
    pf  [label="ParameterFilters"];
    mt  [label="MetaTile"];
    s   [label="WMSSource"];
    c   [label="TileCacheBase"];

    {
        tl -> tm [label="load_tile"];
        tm -> rf [label="apply"];
        tm -> pf [label="filter"];
        tm -> c  [label="load_tile\\nstore_tiles"];
        tm -> mt [label="request_raster\\nwrite_tile"];
        mt -> s  [label="fetch"]
    }

"""
import contextvars
import threading
import time
from collections import OrderedDict
from functools import partial

from tilefront.cache.base import CacheBackendError
from tilefront.cache.meta import MetaTile, FAILED, READY
from tilefront.grid.meta_grid import MetaGrid
from tilefront.image import ImageError, ImageSource
from tilefront.image.opts import FormatModifiers, ImageFormat, ImageOptions
from tilefront.paramfilter import ParameterFilters
from tilefront.source import BackendTimeout, SourceError
from tilefront.tilefilter import RequestFilterChain

import logging
log = logging.getLogger('tilefront.cache')

USE_BACKEND = 'backend'


class ExpirationPolicy(object):
    """
    Expiration of cached tiles and of tiles in client caches.

    Both values are either ``None`` (no expiration), a number of seconds,
    or `USE_BACKEND` for the max-age of the backend response.
    """
    def __init__(self, expire_cache=None, expire_clients=None):
        self.expire_cache = self._check(expire_cache)
        self.expire_clients = self._check(expire_clients)

    @staticmethod
    def _check(value):
        if value is None or value == USE_BACKEND:
            return value
        value = int(value)
        if value < 0:
            raise ValueError('expiration needs to be positive, got %r' % value)
        return value

    @property
    def save_expiration(self):
        """
        ``True`` if the expiration of the backend response is required.
        """
        return USE_BACKEND in (self.expire_cache, self.expire_clients)

    def cache_expires(self, backend_expiration=None):
        if self.expire_cache == USE_BACKEND:
            return backend_expiration
        return self.expire_cache

    def client_expires(self, backend_expiration=None):
        if self.expire_clients == USE_BACKEND:
            return backend_expiration
        return self.expire_clients

    def __repr__(self):
        return 'ExpirationPolicy(expire_cache=%r, expire_clients=%r)' % (
            self.expire_cache, self.expire_clients)


class Tile(object):
    """
    Internal data object for all tiles. Stores the tile-``coord`` and the tile data.

    :ivar source: the encoded tile
    :type source: ImageSource
    :ivar expires: seconds until the cached tile should be refreshed
    :ivar backend_expires: the expiration of the backend response in seconds,
        caches need to store it with the tile
    :ivar client_expires: seconds clients may cache the tile
    :ivar params_key: the normalized request parameters of the tile
    """
    def __init__(self, coord, source=None, expires=None, client_expires=None,
                 params_key='', format=None, backend_expires=None):
        self.coord = coord
        self.source = source
        self.expires = expires
        self.backend_expires = backend_expires
        self.client_expires = client_expires
        self.params_key = params_key
        self.format = format
        self.timestamp = None
        self.stored = False

    def source_buffer(self, *args, **kw):
        if self.source is not None:
            return self.source.as_buffer(*args, **kw)
        else:
            return None

    def source_image(self, *args, **kw):
        if self.source is not None:
            return self.source.as_image(*args, **kw)
        else:
            return None

    def is_missing(self):
        """
        Returns ``True`` when the tile has no ``data``.

        >>> Tile((1, 2, 3)).is_missing()
        True
        >>> Tile((1, 2, 3), './tmp/foo').is_missing()
        False
        """
        return self.source is None

    def is_expired(self, now=None):
        """
        >>> t = Tile((0, 0, 1), expires=60)
        >>> t.timestamp = 1000
        >>> t.is_expired(now=1059), t.is_expired(now=1061)
        (False, True)
        """
        if self.expires is None or self.timestamp is None:
            return False
        if now is None:
            now = time.time()
        return self.timestamp + self.expires < now

    def __eq__(self, other):
        """
        >>> Tile((0, 0, 1)) == Tile((0, 0, 1))
        True
        >>> Tile((0, 0, 1)) == Tile((1, 0, 1))
        False
        """
        if isinstance(other, Tile):
            return (self.coord == other.coord and
                    self.params_key == other.params_key and
                    self.source == other.source)
        else:
            return NotImplemented

    def __hash__(self):
        return hash((self.coord, self.params_key))

    def __repr__(self):
        return 'Tile(%r, source=%r, params_key=%r)' % (self.coord, self.source, self.params_key)


class TileManager(object):
    """
    Creates tiles of a single grid with meta tiles.

    For each combination of meta tile, request parameters and request
    format, only one backend request runs at a time. All concurrent
    requests for tiles of this meta tile wait for the result. Ready meta
    tiles are kept (up to `max_meta_tiles`) until their cache expiration
    elapsed.

    :param source: the source for meta tile images (`WMSSource`)
    :param format: the default output format
    :param image_opts: the `ImageOptions` of the source images, used for
        the transparency of tiles if the format modifier does not set it
    :param cache: optional `TileCacheBase` for created tiles
    """
    def __init__(self, grid, source, format='image/png', meta_size=None, meta_buffer=0,
                 request_filters=None, param_filters=None, format_modifiers=None,
                 cache=None, expiration=None, max_meta_tiles=512, identifier=None,
                 image_opts=None):
        self.grid = grid
        self.source = source
        self.format = ImageFormat(format)
        self.meta_grid = MetaGrid(grid, meta_size=meta_size or (1, 1), meta_buffer=meta_buffer)
        self.request_filters = request_filters or RequestFilterChain()
        self.param_filters = param_filters or ParameterFilters()
        self.format_modifiers = format_modifiers or FormatModifiers()
        self.image_opts = image_opts or ImageOptions()
        self.cache = cache
        self.expiration = expiration or ExpirationPolicy()
        self.max_meta_tiles = max_meta_tiles
        self.identifier = identifier
        self._meta_tiles = OrderedDict()
        self._lock = threading.Lock()

    def load_tile(self, tile_coord, format=None, params=None, timeout=None):
        """
        Return the `Tile` for `tile_coord`.

        :param params: the raw request parameters
        :param timeout: maximum time to wait for the backend in seconds
        :raises GridError: for tiles outside of the grid
        :raises RequestFiltered: if a request filter rejected the tile
        :raises ParameterRejected: for invalid parameters
        :raises SourceError: if the backend request failed
        """
        tile_coord = tuple(tile_coord)
        self.grid.check_tile_coord(tile_coord)
        self.request_filters.apply(tile_coord)
        filtered = self.param_filters.filter(params)

        format = ImageFormat(format or self.format)
        modifier = self.format_modifiers.modifier(format)
        image_opts = self._tile_image_opts(modifier)

        if self.cache is not None:
            tile = Tile(tile_coord, params_key=filtered.key, format=format)
            if self._load_cached(tile):
                tile.client_expires = self.expiration.client_expires(tile.backend_expires)
                return tile

        address = self.meta_grid.meta_tile_address(tile_coord)
        request_params = filtered.request_params()
        request_params.update(modifier.request_params())
        key = (address.main_tile_coord, filtered.key, str(modifier.fetch_format),
               tuple(sorted(modifier.request_params().items())))

        meta_tile, created = self._lookup_meta_tile(key, address)
        if created:
            create = partial(self._create_meta_tile, key, meta_tile, modifier.fetch_format,
                             request_params, image_opts, filtered.key, format)
            if timeout is None:
                create()
            else:
                # run with the context-local base_config of this request
                ctx = contextvars.copy_context()
                t = threading.Thread(target=ctx.run, args=(create, ),
                                     name='meta tile %r' % (address, ))
                t.daemon = True
                t.start()

        if not meta_tile.wait(timeout):
            raise BackendTimeout('no response for meta tile %r within %.1fs' % (address, timeout))

        if meta_tile.state == FAILED:
            meta_tile.raise_error()

        index = self.meta_grid.tile_index(meta_tile.address, tile_coord)
        buf = meta_tile.write_tile(index, image_opts)
        return Tile(tile_coord, ImageSource(buf, image_opts=image_opts),
                    expires=self.expiration.cache_expires(meta_tile.expiration),
                    client_expires=self.expiration.client_expires(meta_tile.expiration),
                    params_key=filtered.key, format=format,
                    backend_expires=meta_tile.expiration)

    def _tile_image_opts(self, modifier):
        image_opts = modifier.image_opts()
        if image_opts.transparent is None:
            image_opts.transparent = self.image_opts.transparent
        return image_opts

    def _lookup_meta_tile(self, key, address):
        """
        Return the meta tile for `key` and ``True`` if the caller should
        request it.
        """
        with self._lock:
            meta_tile = self._meta_tiles.get(key)
            if meta_tile is not None:
                if meta_tile.state == FAILED or meta_tile.is_expired(
                        self.expiration.cache_expires(meta_tile.expiration)):
                    del self._meta_tiles[key]
                else:
                    self._meta_tiles.move_to_end(key)
                    return meta_tile, False

            meta_tile = MetaTile(address, self.meta_grid.tile_list(address))
            self._meta_tiles[key] = meta_tile
            self._evict_meta_tiles()
            return meta_tile, True

    def _evict_meta_tiles(self):
        # meta tiles in progress are never evicted
        if self.max_meta_tiles is None:
            return
        surplus = len(self._meta_tiles) - self.max_meta_tiles
        if surplus <= 0:
            return
        for key in list(self._meta_tiles):
            if surplus <= 0:
                break
            if self._meta_tiles[key].state in (READY, FAILED):
                del self._meta_tiles[key]
                surplus -= 1

    def _drop_meta_tile(self, key, meta_tile):
        with self._lock:
            if self._meta_tiles.get(key) is meta_tile:
                del self._meta_tiles[key]

    def _create_meta_tile(self, key, meta_tile, request_format, request_params,
                          image_opts, params_key, format):
        try:
            meta_tile.request_raster(self.meta_grid, self.source, request_format,
                                     dimensions=request_params,
                                     save_expiration=self.expiration.save_expiration)
        except SourceError as ex:
            log.error('unable to create meta tile %r: %s', meta_tile.address, ex)
            self._drop_meta_tile(key, meta_tile)
            return
        except Exception:
            self._drop_meta_tile(key, meta_tile)
            raise

        if self.cache is not None:
            self._store_tiles(meta_tile, image_opts, params_key, format)

    def _store_tiles(self, meta_tile, image_opts, params_key, format):
        expires = self.expiration.cache_expires(meta_tile.expiration)
        now = time.time()
        tiles = []
        for index, tile_coord in enumerate(meta_tile.tile_coords):
            try:
                buf = meta_tile.write_tile(index, image_opts)
            except ImageError as ex:
                log.warning('unable to encode tile %r for cache: %s', tile_coord, ex)
                continue
            tile = Tile(tile_coord, ImageSource(buf, image_opts=image_opts),
                        expires=expires, params_key=params_key, format=format,
                        backend_expires=meta_tile.expiration)
            tile.timestamp = now
            tiles.append(tile)
        try:
            if not self.cache.store_tiles(tiles):
                log.warning('unable to store all tiles of meta tile %r', meta_tile.address)
        except CacheBackendError as ex:
            log.warning('unable to store tiles of meta tile %r: %s', meta_tile.address, ex)

    def _load_cached(self, tile):
        try:
            if not self.cache.load_tile(tile):
                return False
        except CacheBackendError as ex:
            log.warning('unable to load tile %r from cache: %s', tile.coord, ex)
            return False
        return not tile.is_expired()

    def __repr__(self):
        return 'TileManager(%r, %r)' % (self.identifier, self.meta_grid)

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
Tile layers with one `TileManager` for each grid.
"""
from tilefront.image import BlankImageSource
from tilefront.image.opts import ImageFormat

import logging
log = logging.getLogger(__name__)


class LayerError(Exception):
    pass


class TileLayer(object):
    """
    :param tile_managers: dict with the `TileManager` for each grid name
        (the first grid is the default grid)
    :param formats: list of supported output formats (mime types)
    """
    def __init__(self, name, tile_managers, formats=None, title=None):
        if not tile_managers:
            raise ValueError('layer %s without grids' % (name, ))
        self.name = name
        self.title = title
        self.tile_managers = dict(tile_managers)
        self.grids = list(tile_managers)
        self.formats = [ImageFormat(f) for f in (formats or ['image/png'])]
        self._blank_tiles = {}

    @property
    def default_grid(self):
        return self.grids[0]

    def tile_manager(self, grid=None):
        if grid is None:
            grid = self.default_grid
        try:
            return self.tile_managers[grid]
        except KeyError:
            raise LayerError('layer %s has no grid %s' % (self.name, grid))

    def _check_format(self, format):
        if format is None:
            return self.formats[0]
        format = ImageFormat(format)
        if format not in self.formats:
            raise LayerError('layer %s does not support format %s' % (self.name, format))
        return format

    def get_tile(self, tile_coord, format=None, params=None, grid=None, timeout=None):
        """
        Return the `Tile` for `tile_coord`. Requests that were rejected
        by a request filter raise `RequestFiltered` and should be answered
        with `blank_tile`.
        """
        format = self._check_format(format)
        tile_mgr = self.tile_manager(grid)
        return tile_mgr.load_tile(tile_coord, format=format, params=params, timeout=timeout)

    def blank_tile(self, format=None, grid=None):
        """
        Return the encoded blank tile (transparent, if the format supports it).
        """
        format = self._check_format(format)
        tile_mgr = self.tile_manager(grid)
        key = (str(format), tile_mgr.grid.tile_size)
        if key not in self._blank_tiles:
            image_opts = tile_mgr.format_modifiers.modifier(format).image_opts()
            image_opts.transparent = True
            img = BlankImageSource(size=tile_mgr.grid.tile_size, image_opts=image_opts)
            self._blank_tiles[key] = img.as_buffer().read()
        return self._blank_tiles[key]

    def __repr__(self):
        return 'TileLayer(%r, grids=%r)' % (self.name, self.grids)

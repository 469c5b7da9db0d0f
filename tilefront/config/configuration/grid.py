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

from pyproj.exceptions import CRSError

from tilefront.config.configuration.base import ConfigurationError
from tilefront.config.configuration.base import ConfigurationBase
from tilefront.grid import GridError
from tilefront.util.py import memoize

import logging

log = logging.getLogger('tilefront.config')


class GridConfiguration(ConfigurationBase):
    @memoize
    def tile_grid(self):
        from tilefront.grid.tile_grid import tile_grid

        conf = self.conf
        tile_size = self.context.globals.get_value('tile_size', conf,
                                                   global_key='grid.tile_size')
        tile_size = tuple(tile_size)

        if conf.get('origin') is None:
            log.info('grid %s does not have an origin, using sw (south-west)', conf['name'])

        try:
            grid = tile_grid(
                name=conf['name'],
                srs=conf.get('srs'),
                bbox=conf.get('bbox'),
                data_bbox=conf.get('data_bbox'),
                tile_size=tile_size,
                res=conf.get('res'),
                zoom_start=conf.get('zoom_start'),
                zoom_stop=conf.get('zoom_stop'),
                origin=conf.get('origin'),
            )
        except (GridError, CRSError, ValueError) as ex:
            raise ConfigurationError('invalid grid %s: %s' % (conf['name'], ex))

        return grid

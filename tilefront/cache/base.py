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

from abc import ABC, abstractmethod


class CacheBackendError(Exception):
    pass


class TileCacheBase(ABC):
    """
    Base of all tile caches. Tile caches store encoded tiles by
    ``tile.coord``, ``tile.params_key`` and ``tile.format``.

    The storage itself is not part of TileFront, the `TileManager` only
    uses this interface.
    """

    @abstractmethod
    def load_tile(self, tile):
        """
        Load the tile data into ``tile.source`` and set ``tile.timestamp``,
        ``tile.expires`` and ``tile.backend_expires``.
        Return ``True`` if the tile was found.
        """
        pass

    def load_tiles(self, tiles):
        all_succeed = True
        for tile in tiles:
            if not self.load_tile(tile):
                all_succeed = False
        return all_succeed

    @abstractmethod
    def store_tile(self, tile):
        """
        Store ``tile.source`` with ``tile.timestamp``, ``tile.expires`` and
        ``tile.backend_expires``. Return ``True`` on success.
        """
        pass

    def store_tiles(self, tiles):
        all_succeed = True
        for tile in tiles:
            if not self.store_tile(tile):
                all_succeed = False
        return all_succeed

    @abstractmethod
    def is_cached(self, tile):
        """
        Return ``True`` if the tile is cached.
        """
        pass

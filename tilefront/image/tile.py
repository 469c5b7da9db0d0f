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

from tilefront.image import ImageSource, CropOutOfBounds

import logging
log = logging.getLogger(__name__)


class TileSplitter(object):
    """
    Splits a large image into multiple tiles.
    """
    def __init__(self, meta_img, image_opts):
        self.meta_img = meta_img
        self.image_opts = image_opts

    def get_tile(self, crop_coord, tile_size):
        """
        Return the cropped tile.
        :param crop_coord: the upper left pixel coord to start
        :param tile_size: width and height of the new tile
        :rtype: `ImageSource`
        :raises CropOutOfBounds: if the tile is not completely inside the image
        """
        minx, miny = crop_coord
        maxx = minx + tile_size[0]
        maxy = miny + tile_size[1]

        if (minx < 0 or miny < 0 or maxx > self.meta_img.size[0]
                or maxy > self.meta_img.size[1]):
            raise CropOutOfBounds('crop %r outside of image with size %r' % (
                (minx, miny, maxx, maxy), self.meta_img.size),
                crop_box=(minx, miny, maxx, maxy))

        crop = self.meta_img.crop((minx, miny, maxx, maxy))
        return ImageSource(crop, size=tile_size, image_opts=self.image_opts)


def split_meta_tiles(meta_img, tiles_pattern, tile_size, image_opts):
    """
    Split the `meta_img` into tiles.

    :param tiles_pattern: list of ``(tile_coord, (x, y))`` with the upper-left
        pixel of each tile (see `MetaGrid.tiles_pattern`)
    :returns: tuple with one `ImageSource` for each tile of the pattern, or
        the `CropOutOfBounds` error for tiles that could not be cropped
    """
    if len(tiles_pattern) == 1 and tiles_pattern[0][1] == (0, 0):
        return (ImageSource(meta_img, image_opts=image_opts), )

    splitter = TileSplitter(meta_img, image_opts)
    tiles = []
    for tile_coord, crop_coord in tiles_pattern:
        try:
            tiles.append(splitter.get_tile(crop_coord, tile_size))
        except CropOutOfBounds as ex:
            log.error('unable to crop tile %r at %r: %s', tile_coord, crop_coord, ex)
            ex.tile_coord = tile_coord
            tiles.append(ex)
    return tuple(tiles)

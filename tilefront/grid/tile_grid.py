import math

from tilefront.grid import (
    GridError,
    OutOfRangeZoom,
    TileOutOfBounds,
    default_bboxs,
    origin_from_string,
)
from tilefront.srs import SRS
from tilefront.util.bbox import bbox_contains, bbox_equals, bbox_tuple, merge_bbox

DEFAULT_ZOOM_START = 0
DEFAULT_ZOOM_STOP = 20


def tile_grid(srs=None, bbox=None, data_bbox=None, tile_size=(256, 256),
              res=None, zoom_start=None, zoom_stop=None, origin='ll', name=None):
    """
    This function creates a new TileGrid.

    Resolutions are either declared as explicit list (`res`, strictly
    decreasing) or derived from the zoom range (`zoom_start`, `zoom_stop`).
    """
    if srs is None:
        srs = 'EPSG:3857'
    srs = SRS(srs)

    if not bbox:
        bbox = default_bboxs.get(srs)
        if not bbox:
            raise GridError('need a bbox for grid with %s' % srs)
    bbox = bbox_tuple(bbox)

    if data_bbox:
        data_bbox = bbox_tuple(data_bbox)

    if res is not None:
        if zoom_start is not None or zoom_stop is not None:
            raise GridError('grid %s: res and zoom_start/zoom_stop are exclusive' % (name or srs, ))
        if not isinstance(res, (list, tuple)):
            raise GridError('res is not a list')

    return TileGrid(srs, bbox=bbox, data_bbox=data_bbox, tile_size=tuple(tile_size),
                    res=res, zoom_start=zoom_start, zoom_stop=zoom_stop,
                    origin=origin, name=name)


class TileGrid(object):
    """
    This class represents a regular tile grid. The origin is bottom-left,
    unless the grid is created with ``origin='ul'``.

    :ivar tile_size: the size of each tile in pixel
    :type tile_size: ``int(with), int(height)``
    :ivar srs: the srs of the grid
    :type srs: `SRS`
    :ivar bbox: the bbox of the grid, all tiles are addressed within this bbox
    :ivar data_bbox: the area with meaningful data, inside of `bbox`
    :ivar zoom_start: the first valid level
    :ivar zoom_stop: the last valid level (inclusive)
    """

    flipped_y_axis = False

    def __init__(self, srs=3857, bbox=None, data_bbox=None, tile_size=(256, 256),
                 res=None, zoom_start=None, zoom_stop=None, origin='ll', name=None):
        """
        >>> grid = TileGrid(srs=3857)
        >>> [round(x, 2) for x in grid.bbox]
        [-20037508.34, -20037508.34, 20037508.34, 20037508.34]
        """
        if isinstance(srs, (int, str)):
            srs = SRS(srs)
        self.srs = srs
        self.tile_size = tile_size
        self.origin = origin_from_string(origin)
        self.name = name

        if self.origin == 'ul':
            self.flipped_y_axis = True

        if bbox is None:
            bbox = default_bboxs.get(srs)
            if bbox is None:
                raise GridError('need a bbox for grid with %s' % srs)
        self.bbox = tuple(bbox)
        if self.bbox[0] >= self.bbox[2] or self.bbox[1] >= self.bbox[3]:
            raise GridError('invalid grid bbox %r' % (self.bbox, ))

        if data_bbox is None:
            data_bbox = self.bbox
        if not bbox_contains(self.bbox, data_bbox):
            raise GridError('data bbox %r not within grid bbox %r' % (tuple(data_bbox), self.bbox))
        self.data_bbox = tuple(data_bbox)

        if res is not None:
            res = [float(r) for r in res]
            if not res:
                raise GridError('empty resolution list')
            for prev, cur in zip(res, res[1:]):
                if cur >= prev:
                    raise GridError('resolutions need to be strictly decreasing, got %r' % (res, ))
            self.zoom_start = 0
            self.zoom_stop = len(res) - 1
            self.resolutions = dict(enumerate(res))
        else:
            if zoom_start is None:
                zoom_start = DEFAULT_ZOOM_START
            if zoom_stop is None:
                zoom_stop = DEFAULT_ZOOM_STOP
            if zoom_start < 0 or zoom_stop < zoom_start:
                raise GridError('invalid zoom range [%r, %r]' % (zoom_start, zoom_stop))
            self.zoom_start = zoom_start
            self.zoom_stop = zoom_stop
            self.resolutions = self._calc_res()

        self.grid_sizes = self._calc_grids()

    def _calc_res(self):
        width = self.bbox[2] - self.bbox[0]
        res = {}
        for level in range(self.zoom_start, self.zoom_stop + 1):
            res[level] = width / (self.tile_size[0] * 2 ** level)
        return res

    def _calc_grids(self):
        width = self.bbox[2] - self.bbox[0]
        height = self.bbox[3] - self.bbox[1]
        grids = {}
        for level, res in self.resolutions.items():
            x = max(math.ceil(round(width / res / self.tile_size[0], 9)), 1)
            y = max(math.ceil(round(height / res / self.tile_size[1], 9)), 1)
            grids[level] = (int(x), int(y))
        return grids

    @property
    def levels(self):
        return list(range(self.zoom_start, self.zoom_stop + 1))

    def check_level(self, level):
        if not isinstance(level, int) or level < self.zoom_start or level > self.zoom_stop:
            raise OutOfRangeZoom(level, self.zoom_start, self.zoom_stop)

    def check_tile_coord(self, tile_coord):
        """
        Raise `OutOfRangeZoom` or `TileOutOfBounds` for invalid `tile_coord`.
        """
        x, y, z = tile_coord
        self.check_level(z)
        grid_size = self.grid_sizes[z]
        if x < 0 or y < 0 or x >= grid_size[0] or y >= grid_size[1]:
            raise TileOutOfBounds(tile_coord, grid_size)

    def resolution(self, level):
        """
        Returns the resolution of the `level` in units/pixel.

        :param level: the zoom level index (zero is top)

        >>> grid = TileGrid(SRS(3857))
        >>> '%.5f' % grid.resolution(0)
        '156543.03393'
        >>> '%.5f' % grid.resolution(1)
        '78271.51696'
        >>> '%.5f' % grid.resolution(4)
        '9783.93962'
        """
        self.check_level(level)
        return self.resolutions[level]

    def level_for_resolution(self, res, rel_delta=1e-6):
        """
        Returns the level with the resolution `res`.

        :raises GridError: if no level matches

        >>> grid = TileGrid(SRS(3857))
        >>> grid.level_for_resolution(grid.resolution(3))
        3
        """
        for level, l_res in self.resolutions.items():
            if abs(l_res - res) <= l_res * rel_delta:
                return level
        raise GridError('resolution %r does not match any level of %r' % (res, self))

    def tile(self, x, y, level):
        """
        Returns the tile id for the given point.

        >>> grid = TileGrid(SRS(3857))
        >>> grid.tile(1000, 1000, 0)
        (0, 0, 0)
        >>> grid.tile(1000, 1000, 1)
        (1, 1, 1)
        >>> grid = TileGrid(SRS(3857), tile_size=(512, 512))
        >>> grid.tile(1000, 1000, 2)
        (2, 2, 2)
        """
        res = self.resolution(level)
        x = x - self.bbox[0]
        if self.flipped_y_axis:
            y = self.bbox[3] - y
        else:
            y = y - self.bbox[1]
        tile_x = x/float(res*self.tile_size[0])
        tile_y = y/float(res*self.tile_size[1])
        return (int(math.floor(tile_x)), int(math.floor(tile_y)), level)

    def tile_coord_from_bbox(self, bbox):
        """
        Returns the tile coordinate for a `bbox` that matches a tile
        of this grid exactly. Inverse of `tile_bbox`.

        >>> grid = TileGrid(SRS(3857))
        >>> grid.tile_coord_from_bbox(grid.tile_bbox((3, 5, 4)))
        (3, 5, 4)
        """
        res = (bbox[2] - bbox[0]) / self.tile_size[0]
        level = self.level_for_resolution(res)
        center_x = (bbox[0] + bbox[2]) / 2.0
        center_y = (bbox[1] + bbox[3]) / 2.0
        tile_coord = self.tile(center_x, center_y, level)
        self.check_tile_coord(tile_coord)
        if not bbox_equals(self.tile_bbox(tile_coord), bbox, res / 10.0):
            raise GridError('bbox %r is not aligned to grid %r' % (tuple(bbox), self))
        return tile_coord

    def _tiles_bbox(self, tiles):
        """
        Returns the bbox of multiple tiles.
        The tiles should be ordered row-wise, bottom-up.

        :param tiles: ordered list of tiles
        :returns: the bbox of all tiles
        """
        ll_bbox = self._tile_bbox(tiles[0])
        ur_bbox = self._tile_bbox(tiles[-1])
        return merge_bbox(ll_bbox, ur_bbox)

    def tile_bbox(self, tile_coord):
        """
        Returns the bbox of the given tile.

        >>> grid = TileGrid(SRS(3857))
        >>> [round(x, 2) for x in grid.tile_bbox((0, 0, 0))]
        [-20037508.34, -20037508.34, 20037508.34, 20037508.34]
        >>> [round(x, 2) for x in grid.tile_bbox((1, 1, 1))]
        [0.0, 0.0, 20037508.34, 20037508.34]
        """
        self.check_tile_coord(tile_coord)
        return self._tile_bbox(tile_coord)

    def _tile_bbox(self, tile_coord):
        x, y, z = tile_coord
        res = self.resolutions[z]

        x0 = self.bbox[0] + round(x * res * self.tile_size[0], 12)
        x1 = x0 + round(res * self.tile_size[0], 12)

        if self.flipped_y_axis:
            y1 = self.bbox[3] - round(y * res * self.tile_size[1], 12)
            y0 = y1 - round(res * self.tile_size[1], 12)
        else:
            y0 = self.bbox[1] + round(y * res * self.tile_size[1], 12)
            y1 = y0 + round(res * self.tile_size[1], 12)

        return x0, y0, x1, y1

    def data_tile_range(self, level):
        """
        Returns the range of tiles that intersect the `data_bbox`
        at `level` as ``(minx, miny, maxx, maxy)`` (inclusive).

        >>> grid = TileGrid(SRS(3857), data_bbox=(0, 0, 20037508.342789244, 20037508.342789244))
        >>> grid.data_tile_range(2)
        (2, 2, 3, 3)
        """
        res = self.resolution(level)
        # remove 1/10 of a pixel so we don't get tiles we only touch
        delta = res / 10.0
        x0, y0, _ = self.tile(self.data_bbox[0] + delta, self.data_bbox[1] + delta, level)
        x1, y1, _ = self.tile(self.data_bbox[2] - delta, self.data_bbox[3] - delta, level)
        if self.flipped_y_axis:
            y0, y1 = y1, y0
        grid_size = self.grid_sizes[level]
        return (
            max(x0, 0), max(y0, 0),
            min(x1, grid_size[0] - 1), min(y1, grid_size[1] - 1),
        )

    def __repr__(self):
        return '%s(%r, (%.4f, %.4f, %.4f, %.4f),...)' % (
            self.__class__.__name__, self.srs, self.bbox[0], self.bbox[1], self.bbox[2], self.bbox[3])

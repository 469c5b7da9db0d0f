from collections import namedtuple


class MetaTileAddress(namedtuple('MetaTileAddress', 'x y z width height')):
    """
    Address of a block of ``width`` x ``height`` tiles. ``x``/``y`` is the
    main tile of the block (lower-left tile for south-west grids, upper-left
    tile for north-west grids).
    """
    __slots__ = ()

    @property
    def main_tile_coord(self):
        """
        The "main" tile of the meta tile. This tile(coord) identifies
        the meta tile.

        >>> MetaTileAddress(4, 8, 5, 4, 4).main_tile_coord
        (4, 8, 5)
        """
        return self.x, self.y, self.z

    def contains(self, tile_coord):
        """
        >>> addr = MetaTileAddress(4, 8, 5, 4, 2)
        >>> addr.contains((7, 9, 5)), addr.contains((7, 10, 5)), addr.contains((4, 8, 4))
        (True, False, False)
        """
        x, y, z = tile_coord
        return (z == self.z and
                self.x <= x < self.x + self.width and
                self.y <= y < self.y + self.height)


class MetaGrid(object):
    """
    This class contains methods to calculate bbox, etc. of metatiles.

    :param grid: the grid to use for the metatiles
    :param meta_size: the number of tiles a metatile consist
    :type meta_size: ``(x_size, y_size)``
    :param meta_buffer: the buffer size in pixel that is added to each metatile.
        the number is added to all four borders.
        this buffer (gutter) improves the handling of labels overlapping
        (meta)tile borders.
    :type meta_buffer: pixel
    """

    def __init__(self, grid, meta_size, meta_buffer=0):
        self.grid = grid
        self.meta_size = tuple(meta_size) if meta_size else (1, 1)
        self.meta_buffer = meta_buffer or 0
        if self.meta_size[0] < 1 or self.meta_size[1] < 1:
            raise ValueError('invalid meta_size %r' % (meta_size, ))
        if self.meta_buffer < 0:
            raise ValueError('invalid meta_buffer %r' % (meta_buffer, ))

    def main_tile(self, tile_coord):
        """
        >>> from tilefront.grid.tile_grid import TileGrid
        >>> mgrid = MetaGrid(grid=TileGrid(), meta_size=(4, 4))
        >>> mgrid.main_tile((5, 10, 5))
        (4, 8, 5)
        """
        x, y, z = tile_coord

        meta_size = self._meta_size(z)

        x0 = x//meta_size[0] * meta_size[0]
        y0 = y//meta_size[1] * meta_size[1]

        return x0, y0, z

    def meta_tile_address(self, tile_coord):
        """
        Returns the address of the meta tile that contains `tile_coord`.
        The meta tile is clipped at the right/top border of the grid.

        >>> from tilefront.grid.tile_grid import TileGrid
        >>> mgrid = MetaGrid(grid=TileGrid(), meta_size=(3, 3))
        >>> mgrid.meta_tile_address((3, 2, 2))
        MetaTileAddress(x=3, y=0, z=2, width=1, height=3)
        >>> mgrid.meta_tile_address((0, 0, 0))
        MetaTileAddress(x=0, y=0, z=0, width=1, height=1)
        """
        self.grid.check_tile_coord(tile_coord)
        x0, y0, z = self.main_tile(tile_coord)
        grid_size = self.grid.grid_sizes[z]
        meta_size = self._meta_size(z)
        width = min(meta_size[0], grid_size[0] - x0)
        height = min(meta_size[1], grid_size[1] - y0)
        return MetaTileAddress(x0, y0, z, width, height)

    def _meta_size(self, level):
        grid_size = self.grid.grid_sizes[level]
        return min(self.meta_size[0], grid_size[0]), min(self.meta_size[1], grid_size[1])

    def unbuffered_meta_bbox(self, address):
        x, y, z, width, height = address
        return self.grid._tiles_bbox([(x, y, z),
                                      (x+width-1, y+height-1, z)])

    def meta_bbox(self, address, buffered=True):
        """
        Returns the bbox of the meta tile. The buffered bbox extends
        ``meta_buffer`` pixels in all directions, even beyond the grid bbox.

        >>> from tilefront.grid.tile_grid import TileGrid
        >>> mgrid = MetaGrid(grid=TileGrid(), meta_size=(2, 2))
        >>> [round(x, 2) for x in mgrid.meta_bbox(mgrid.meta_tile_address((0, 0, 2)))]
        [-20037508.34, -20037508.34, 0.0, 0.0]
        """
        bbox = self.unbuffered_meta_bbox(address)
        if not buffered or self.meta_buffer == 0:
            return bbox
        minx, miny, maxx, maxy = bbox
        res = self.grid.resolution(address.z)
        buf = self.meta_buffer * res
        return (minx - buf, miny - buf, maxx + buf, maxy + buf)

    def meta_size_px(self, address):
        """
        Returns the pixel size of the meta tile image (incl. buffer).

        >>> from tilefront.grid.tile_grid import TileGrid
        >>> mgrid = MetaGrid(grid=TileGrid(), meta_size=(3, 3), meta_buffer=10)
        >>> mgrid.meta_size_px(mgrid.meta_tile_address((0, 0, 4)))
        (788, 788)
        """
        tile_size = self.grid.tile_size
        return (address.width * tile_size[0] + 2 * self.meta_buffer,
                address.height * tile_size[1] + 2 * self.meta_buffer)

    def tile_list(self, address):
        """
        Returns all tiles of the meta tile, row-wise from the upper-left tile.

        >>> from tilefront.grid.tile_grid import TileGrid
        >>> mgrid = MetaGrid(grid=TileGrid(), meta_size=(2, 2))
        >>> mgrid.tile_list(mgrid.meta_tile_address((0, 1, 3)))
        [(0, 1, 3), (1, 1, 3), (0, 0, 3), (1, 0, 3)]
        """
        x0, y0, z, width, height = address
        if self.grid.flipped_y_axis:
            ys = range(y0, y0 + height)
        else:
            ys = range(y0 + height - 1, y0 - 1, -1)
        xs = range(x0, x0 + width)
        return [(x, y, z) for y in ys for x in xs]

    def tile_index(self, address, tile_coord):
        """
        Returns the position of `tile_coord` in `tile_list`.

        >>> from tilefront.grid.tile_grid import TileGrid
        >>> mgrid = MetaGrid(grid=TileGrid(), meta_size=(2, 2))
        >>> addr = mgrid.meta_tile_address((0, 0, 3))
        >>> mgrid.tile_index(addr, (0, 1, 3)), mgrid.tile_index(addr, (1, 0, 3))
        (0, 3)
        """
        if not address.contains(tile_coord):
            raise ValueError('tile %r not in meta tile %r' % (tile_coord, address))
        x, y, _z = tile_coord
        col = x - address.x
        if self.grid.flipped_y_axis:
            row = y - address.y
        else:
            row = address.height - 1 - (y - address.y)
        return row * address.width + col

    def tiles_pattern(self, address):
        """
        Returns the tile pattern for the meta tile.
        The result contains for each tile the ``tile_coord`` and the upper-left
        pixel coordinate of the tile in the meta tile image.

        >>> from tilefront.grid.tile_grid import TileGrid
        >>> mgrid = MetaGrid(grid=TileGrid(), meta_size=(2, 2), meta_buffer=10)
        >>> tiles = mgrid.tiles_pattern(mgrid.meta_tile_address((1, 1, 2)))
        >>> tiles[0], tiles[-1]
        (((0, 1, 2), (10, 10)), ((1, 0, 2), (266, 266)))
        """
        tile_size = self.grid.tile_size
        pattern = []
        for i, tile_coord in enumerate(self.tile_list(address)):
            row, col = divmod(i, address.width)
            pattern.append((tile_coord, (
                col * tile_size[0] + self.meta_buffer,
                row * tile_size[1] + self.meta_buffer)))
        return pattern

    def __repr__(self):
        return '%s(%r, %r, %r)' % (self.__class__.__name__, self.grid,
                                   self.meta_size, self.meta_buffer)

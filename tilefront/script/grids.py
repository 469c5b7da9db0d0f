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

import math
import sys
import optparse

from tilefront.config import local_base_config
from tilefront.config.loader import load_configuration, ConfigurationError


def format_conf_value(value):
    if isinstance(value, tuple):
        # YAMl only supports lists, convert for clarity
        value = list(value)
    return repr(value)


def display_grid(grid_conf, out=sys.stdout):
    print('%s:' % (grid_conf.conf['name'],), file=out)
    print('    Configuration:', file=out)
    conf_dict = grid_conf.conf.copy()

    tile_grid = grid_conf.tile_grid()
    if 'tile_size' not in conf_dict:
        conf_dict['tile_size*'] = tile_grid.tile_size
    if 'bbox' not in conf_dict:
        conf_dict['bbox*'] = tile_grid.bbox
    if 'origin' not in conf_dict:
        conf_dict['origin*'] = 'sw'
    if tile_grid.data_bbox != tile_grid.bbox:
        conf_dict.setdefault('data_bbox', tile_grid.data_bbox)

    for key in sorted(conf_dict):
        if key == 'name':
            continue
        print('        %s: %s' % (key, format_conf_value(conf_dict[key])), file=out)
    print('    Levels: Resolutions, # x * y = total tiles', file=out)
    max_digits = max([len("%r" % (res,)) for res in tile_grid.resolutions.values()])
    for level in tile_grid.levels:
        res = tile_grid.resolutions[level]
        tiles_in_x, tiles_in_y = tile_grid.grid_sizes[level]
        total_tiles = tiles_in_x * tiles_in_y
        spaces = max_digits - len("%r" % (res,)) + 1
        print("        %.2d:  %r,%s# %6d * %-6d = %10s" % (
            level, res, ' '*spaces, tiles_in_x, tiles_in_y, human_readable_number(total_tiles)),
            file=out)


def human_readable_number(num):
    """
    >>> human_readable_number(1234)
    '1234'
    >>> human_readable_number(12345678)
    '  12.35M'
    """
    if num > 10**6:
        return '%7.2fM' % (num/10**6)
    if math.isnan(num):
        return '?'
    return '%d' % int(num)


def display_grids_list(grids, out=sys.stdout):
    for grid_name in sorted(grids.keys()):
        print(grid_name, file=out)


def display_grids(grids, out=sys.stdout):
    for i, grid_name in enumerate(sorted(grids.keys())):
        if i != 0:
            print(file=out)
        display_grid(grids[grid_name], out=out)


def grids_command(args=None):
    parser = optparse.OptionParser("%prog grids [options] tilefront_conf")
    parser.add_option("-f", "--tilefront-conf", dest="tilefront_conf",
                      help="TileFront configuration.")
    parser.add_option("-g", "--grid", dest="grid_name",
                      help="Display only information about the specified grid.")
    parser.add_option("--all", dest="show_all", action="store_true", default=False,
                      help="Show also grids that are not used by any layer.")
    parser.add_option("-l", "--list", dest="list_grids", action="store_true", default=False,
                      help="List names of configured grids, which are used by any layer")

    from tilefront.script.util import setup_logging
    import logging
    setup_logging(logging.WARN)

    if args:
        args = args[1:]  # remove script name

    (options, args) = parser.parse_args(args)
    if not options.tilefront_conf:
        if len(args) != 1:
            parser.print_help()
            sys.exit(1)
        else:
            options.tilefront_conf = args[0]
    try:
        proxy_configuration = load_configuration(options.tilefront_conf)
    except ConfigurationError as e:
        print(e, file=sys.stderr)
        print('ERROR: invalid configuration (see above)', file=sys.stderr)
        sys.exit(2)

    with local_base_config(proxy_configuration.base_config):
        if options.show_all or options.grid_name:
            grids = proxy_configuration.grids
        else:
            grids = {}
            for layer in proxy_configuration.layers.values():
                for grid_name in layer.conf['grids']:
                    grids[grid_name] = proxy_configuration.grids[grid_name]

        if options.grid_name:
            options.grid_name = options.grid_name.lower()
            # ignore case for keys
            grids = dict((key.lower(), value) for (key, value) in grids.items())
            if not grids.get(options.grid_name, False):
                print('grid not found: %s' % (options.grid_name,))
                sys.exit(1)

        if options.list_grids:
            display_grids_list(grids, out=sys.stdout)
        elif options.grid_name:
            display_grids({options.grid_name: grids[options.grid_name]}, out=sys.stdout)
        else:
            display_grids(grids, out=sys.stdout)

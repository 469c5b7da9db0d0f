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

import optparse
import sys

from tilefront.config import local_base_config
from tilefront.config.loader import load_configuration, ConfigurationError
from tilefront.grid import GridError
from tilefront.layer import LayerError
from tilefront.paramfilter import ParameterRejected
from tilefront.source import SourceError
from tilefront.tilefilter import RequestFiltered


def parse_params(param_args):
    """
    >>> parse_params(['time=2020', 'STYLES=a=b'])
    {'time': '2020', 'STYLES': 'a=b'}
    """
    params = {}
    for arg in param_args or []:
        if '=' not in arg:
            raise ValueError('parameter %r is not in KEY=VALUE form' % (arg, ))
        key, value = arg.split('=', 1)
        params[key] = value
    return params


def fetch_tile_command(args=None):
    parser = optparse.OptionParser("%prog fetch-tile [options] layer x y z")
    parser.add_option("-f", "--tilefront-conf", dest="tilefront_conf",
                      help="TileFront configuration.")
    parser.add_option("-g", "--grid", dest="grid_name",
                      help="Grid of the tile. Defaults to the first grid of the layer.")
    parser.add_option("--format", dest="format",
                      help="Output format (mime type).")
    parser.add_option("-p", "--param", dest="params", action="append", default=[],
                      help="Request parameter as KEY=VALUE, can be repeated.")
    parser.add_option("--timeout", dest="timeout", type="float",
                      help="Maximum time to wait for the backend in seconds.")
    parser.add_option("-o", "--output", dest="output",
                      help="Write the tile to this file instead of stdout.")

    from tilefront.script.util import setup_logging
    import logging
    setup_logging(logging.WARN)

    if args:
        args = args[1:]  # remove script name

    (options, args) = parser.parse_args(args)
    if not options.tilefront_conf or len(args) != 4:
        parser.print_help()
        sys.exit(1)

    layer_name = args[0]
    try:
        tile_coord = tuple(int(v) for v in args[1:])
        params = parse_params(options.params)
    except ValueError as ex:
        print('ERROR: %s' % (ex, ), file=sys.stderr)
        sys.exit(1)

    try:
        proxy_configuration = load_configuration(options.tilefront_conf)
    except ConfigurationError as e:
        print(e, file=sys.stderr)
        print('ERROR: invalid configuration (see above)', file=sys.stderr)
        sys.exit(2)

    if layer_name not in proxy_configuration.layers:
        print('ERROR: layer not found: %s' % (layer_name, ), file=sys.stderr)
        sys.exit(1)

    with local_base_config(proxy_configuration.base_config):
        layer = proxy_configuration.layers[layer_name].tile_layer()
        try:
            try:
                tile = layer.get_tile(tile_coord, format=options.format, params=params,
                                      grid=options.grid_name, timeout=options.timeout)
                data = tile.source_buffer().read()
            except RequestFiltered as ex:
                print('%s, returning blank tile' % (ex, ), file=sys.stderr)
                data = layer.blank_tile(format=options.format, grid=options.grid_name)
        except (SourceError, GridError, ParameterRejected, LayerError) as ex:
            print('ERROR: %s' % (ex, ), file=sys.stderr)
            sys.exit(2)

    if options.output:
        with open(options.output, 'wb') as f:
            f.write(data)
    else:
        sys.stdout.buffer.write(data)

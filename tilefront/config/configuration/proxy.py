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

import os
from collections import OrderedDict
from copy import deepcopy

from tilefront.config import defaults
from tilefront.config.configuration.global_conf import GlobalConfiguration
from tilefront.config.configuration.grid import GridConfiguration
from tilefront.config.configuration.layer import LayerConfiguration


class ProxyConfiguration(object):
    """
    The complete configuration with all grids and layers.

    :ivar grids: `GridConfiguration` for each grid name
    :ivar layers: `LayerConfiguration` for each layer name
    """
    def __init__(self, conf, conf_base_dir=None):
        self.configuration = conf

        if conf_base_dir is None:
            conf_base_dir = os.getcwd()

        self.load_globals(conf_base_dir=conf_base_dir)
        self.load_grids()
        self.load_layers()

    def load_globals(self, conf_base_dir):
        self.globals = GlobalConfiguration(conf_base_dir=conf_base_dir,
                                           conf=self.configuration.get('globals') or {},
                                           context=self)

    @property
    def base_config(self):
        return self.globals.base_config

    def load_grids(self):
        self.grids = {}
        grid_configs = deepcopy(defaults.grids)
        grid_configs.update(deepcopy(self.configuration.get('grids') or {}))
        for grid_name, grid_conf in grid_configs.items():
            grid_conf.setdefault('name', grid_name)
            self.grids[grid_name] = GridConfiguration(grid_conf, context=self)

    def load_layers(self):
        self.layers = OrderedDict()
        layers_conf = deepcopy(self.configuration.get('layers') or {})
        for layer_name, layer_conf in layers_conf.items():
            layer_conf['name'] = layer_name
            self.layers[layer_name] = LayerConfiguration(conf=layer_conf, context=self)

    def tile_layers(self):
        """
        Returns the `TileLayer` for each layer name.
        """
        return OrderedDict((name, layer.tile_layer()) for name, layer in self.layers.items())

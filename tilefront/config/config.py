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
System-wide configuration.
"""
import os
import copy
import contextlib
import warnings

from werkzeug.local import LocalStack


class Options(dict):
    """
    Dictionary with attribute style access.

    >>> o = Options(bar='foo')
    >>> o.bar
    'foo'
    """
    def __repr__(self):
        return '%s(%s)' % (self.__class__.__name__, dict.__repr__(self))

    def __getattr__(self, name):
        if name in self:
            return self[name]
        else:
            raise AttributeError(name)

    __setattr__ = dict.__setitem__

    def __delattr__(self, name):
        if name in self:
            del self[name]
        else:
            raise AttributeError(name)

    def update(self, other=None, **kw):
        if other is not None:
            if hasattr(other, 'items'):
                it = other.items()
            else:
                it = iter(other)
        else:
            it = kw.items()
        for key, value in it:
            if key in self and isinstance(self[key], Options):
                self[key].update(value)
            else:
                self[key] = value

    def __deepcopy__(self, memo):
        return Options(copy.deepcopy(list(self.items()), memo))


_config = LocalStack()


def base_config():
    """
    Returns the context-local system-wide configuration.
    """
    config = _config.top
    if config is None:
        warnings.warn("calling un-configured base_config",
                      DeprecationWarning, stacklevel=2)
        config = load_default_config()
        config.conf_base_dir = os.getcwd()
        finish_base_config(config)
        _config.push(config)
    return config


@contextlib.contextmanager
def local_base_config(conf):
    """
    Temporarily set the global configuration (tilefront.config.base_config).

    The configuration is context-local. Use `local_base_config` to set
    base_config while loading a configuration, within tests or when
    a front end serves tiles of a specific configuration.
    """
    _config.push(conf)
    try:
        yield
    finally:
        _config.pop()


def _to_options_map(mapping):
    if isinstance(mapping, dict):
        opt = Options()
        for key, value in mapping.items():
            opt[key] = _to_options_map(value)
        return opt
    elif isinstance(mapping, list):
        return [_to_options_map(m) for m in mapping]
    else:
        return mapping


def finish_base_config(bc=None):
    bc = bc or base_config()
    if 'tiles' in bc:
        bc.tiles.meta_size = tuple(bc.tiles.meta_size)
    if 'grid' in bc:
        bc.grid.tile_size = tuple(bc.grid.tile_size)

    if 'conf_base_dir' in bc:
        if 'mask_dir' in bc.tiles and bc.tiles.mask_dir:
            bc.tiles.mask_dir = os.path.join(bc.conf_base_dir, bc.tiles.mask_dir)


def _defaults_dict():
    from tilefront.config import defaults
    config_dict = {}
    for k, v in defaults.__dict__.items():
        if k.startswith('_'):
            continue
        config_dict[k] = v
    return copy.deepcopy(config_dict)


def load_default_config():
    default_conf = Options()
    load_config(default_conf, _defaults_dict())
    return default_conf


def load_config(config, config_dict):
    defaults = _to_options_map(config_dict)

    if defaults:
        for key, value in defaults.items():
            if key in config and hasattr(config[key], 'update'):
                config[key].update(value)
            else:
                config[key] = value

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
Configuration loading and system initializing.
"""
import os

from tilefront.config import local_base_config
from tilefront.config.configuration.base import ConfigurationError
from tilefront.config.configuration.proxy import ProxyConfiguration
from tilefront.config.validator import validate
from tilefront.util.yaml import load_yaml_file, YAMLError

import logging
log = logging.getLogger('tilefront.config')

__all__ = [
    'ConfigurationError',
    'ProxyConfiguration',
    'load_configuration',
]


def load_configuration(tilefront_conf, ignore_warnings=False):
    """
    Load, validate and initialize the configuration `tilefront_conf`.

    :param ignore_warnings: initialize invalid configurations
    :raises ConfigurationError: for invalid configurations
    """
    conf_base_dir = os.path.abspath(os.path.dirname(tilefront_conf))

    # A configuration is checked in three steps:
    # 1. YAML loading: checks YAML syntax like tabs vs. space, indention errors, etc.
    # 2. Validation: checks all options against the schema and all references
    #    to grids
    # 3. Initialization: creates all grids, sources and layers, returns on first error

    try:
        conf_dict = load_configuration_file([os.path.basename(tilefront_conf)], conf_base_dir)
    except (YAMLError, OSError) as ex:
        raise ConfigurationError(ex)

    errors = validate(conf_dict)
    for error in errors:
        log.warning(error)
    if errors and not ignore_warnings:
        raise ConfigurationError('invalid configuration: %s' % '; '.join(errors))

    conf = ProxyConfiguration(conf_dict, conf_base_dir=conf_base_dir)
    with local_base_config(conf.base_config):
        for layer in conf.layers.values():
            layer.tile_layer()
    return conf


def load_configuration_file(files, working_dir):
    """
    Return configuration dict from `files`. Files can include other
    files with ``base``.
    """
    conf_dict = {}
    for conf_file in files:
        conf_file = os.path.normpath(os.path.join(working_dir, conf_file))
        log.info('reading: %s' % conf_file)
        current_dict = load_yaml_file(conf_file)
        if 'base' in current_dict:
            current_working_dir = os.path.dirname(conf_file)
            base_files = current_dict.pop('base')
            if isinstance(base_files, str):
                base_files = [base_files]
            imported_dict = load_configuration_file(base_files, current_working_dir)
            current_dict = merge_dict(current_dict, imported_dict)
        conf_dict = merge_dict(conf_dict, current_dict)

    return conf_dict


def merge_dict(conf, base):
    """
    Return `base` dict with values from `conf` merged in.

    >>> merge_dict({'a': {'b': 2}, 'c': [3]}, {'a': {'x': 1}, 'c': [1, 2]})
    {'a': {'x': 1, 'b': 2}, 'c': [3]}
    """
    for k, v in conf.items():
        if k not in base:
            base[k] = v
        else:
            if isinstance(base[k], dict):
                if v is not None:
                    base[k] = merge_dict(v, base[k])
            else:
                base[k] = v
    return base

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
import json
import os.path
from typing import Iterable

from jsonschema.exceptions import ValidationError
from jsonschema.validators import Draft202012Validator

from tilefront.config import defaults

import logging
log = logging.getLogger('tilefront.config')


with open(os.path.join(os.path.dirname(__file__), 'config-schema.json')) as schema_file:
    schema = json.load(schema_file)


def get_error_messages(errors: Iterable[ValidationError]) -> list[str]:
    msgs = []
    for error in errors:
        path = error.json_path.replace('$', 'root')
        msg = f'{error.message} in {path}'
        msgs.append(msg)
        if error.context is not None:
            msgs += get_error_messages(error.context)
    return msgs


def validate(conf_dict: dict) -> list[str]:
    """
    Validate `conf_dict` against the configuration schema and check all
    references between layers and grids.
    Returns a list with all errors, the list is empty for valid
    configurations.
    """
    validator = Draft202012Validator(schema=schema)
    errors = get_error_messages(validator.iter_errors(conf_dict))

    layers_conf = conf_dict.get('layers')
    if not isinstance(layers_conf, dict):
        return errors

    for name, layer in layers_conf.items():
        if isinstance(layer, dict):
            errors += _validate_layer(conf_dict, name, layer)
    return errors


def _validate_layer(conf_dict: dict, name: str, layer: dict) -> list[str]:
    grids_conf: dict = dict(defaults.grids)
    grids_conf.update(conf_dict.get('grids') or {})

    errors = []
    layer_grids = layer.get('grids') or ['GLOBAL_WEBMERCATOR']
    for grid in layer_grids:
        if grid not in grids_conf:
            errors.append(f"Grid '{grid}' for layer '{name}' not in grids section")

    filter_names = set()
    for request_filter in layer.get('request_filters') or []:
        if not isinstance(request_filter, dict):
            continue
        filter_name = request_filter.get('name')
        if filter_name in filter_names:
            errors.append(f"Duplicate request filter '{filter_name}' for layer '{name}'")
        filter_names.add(filter_name)
        grid = request_filter.get('grid')
        if grid is not None and grid not in layer_grids:
            errors.append(
                f"Grid '{grid}' of request filter '{filter_name}' is not a grid of layer '{name}'"
            )

    keys = set()
    for param_filter in layer.get('parameter_filters') or []:
        if not isinstance(param_filter, dict) or 'key' not in param_filter:
            continue
        key = str(param_filter['key']).lower()
        if key in keys:
            errors.append(f"Duplicate parameter filter '{param_filter['key']}' for layer '{name}'")
        keys.add(key)

    return errors

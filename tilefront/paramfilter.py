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
Validation and normalization of request parameters.

Each distinct set of normalized parameters results in its own set of
cached tiles. Parameters are normalized to a canonical value, so that
requests with insignificant differences share the same tiles.
"""
import hashlib
import re
from collections import OrderedDict

from tilefront.request.base import NoCaseMultiDict

import logging
log = logging.getLogger('tilefront.paramfilter')

STRING = 'string'
REGEX = 'regex'
FLOAT = 'float'


class ParameterRejected(Exception):
    def __init__(self, msg, param=None, value=None):
        Exception.__init__(self, msg)
        self.param = param
        self.value = value


class ParameterRule(object):
    """
    Base of all parameter rules.

    :param key: the name of the parameter (case-insensitive)
    :param default: the value for requests without this parameter
    """
    kind = None

    def __init__(self, key, default=None):
        self.key = key
        self.default = default

    def __repr__(self):
        return '%s(%r, default=%r)' % (self.__class__.__name__, self.key, self.default)


class StringParameterRule(ParameterRule):
    kind = STRING

    def __init__(self, key, values, default=None):
        if not values:
            raise ValueError('parameter %s: needs at least one value' % (key, ))
        self.values = [str(v) for v in values]
        if default is None:
            default = self.values[0]
        ParameterRule.__init__(self, key, str(default))


class RegexParameterRule(ParameterRule):
    kind = REGEX

    def __init__(self, key, regex, default=None):
        self.regex = regex
        self.pattern = re.compile(regex)
        if default is not None:
            default = str(default)
            if not self.pattern.fullmatch(default):
                raise ValueError('parameter %s: default %r does not match %r' % (key, default, regex))
        ParameterRule.__init__(self, key, default)


class FloatParameterRule(ParameterRule):
    """
    Values are snapped to the nearest declared value if the difference is
    within `threshold`.
    """
    kind = FLOAT

    def __init__(self, key, values, threshold=0.0, default=None):
        if not values:
            raise ValueError('parameter %s: needs at least one value' % (key, ))
        self.values = sorted(float(v) for v in values)
        self.threshold = float(threshold)
        if default is None:
            default = self.values[0]
        ParameterRule.__init__(self, key, float(default))

    def nearest(self, value):
        return min(self.values, key=lambda v: abs(v - value))


def normalize(rule, value):
    """
    Returns the normalized value of a parameter.

    :param value: the raw request value, ``None`` or empty if the request
        does not contain the parameter
    :raises ParameterRejected: for values that do not match the rule

    >>> rule = FloatParameterRule('elevation', [1.0, 2.0, 4.0], threshold=0.2)
    >>> normalize(rule, '1.19')
    1.0
    >>> normalize(rule, None)
    1.0
    >>> normalize(StringParameterRule('styles', ['', 'night']), 'night')
    'night'
    """
    if value is None or value == '':
        if rule.default is None:
            raise ParameterRejected('missing value for %s' % (rule.key, ), rule.key, value)
        return rule.default

    if rule.kind == STRING:
        if value not in rule.values:
            raise ParameterRejected('invalid value for %s: %r (not in %r)' % (
                rule.key, value, rule.values), rule.key, value)
        return value

    if rule.kind == REGEX:
        if not rule.pattern.fullmatch(value):
            raise ParameterRejected('invalid value for %s: %r (does not match %r)' % (
                rule.key, value, rule.regex), rule.key, value)
        return value

    if rule.kind == FLOAT:
        try:
            num = float(value)
        except ValueError:
            raise ParameterRejected('invalid value for %s: %r (not a number)' % (
                rule.key, value), rule.key, value)
        if num != num:  # NaN
            raise ParameterRejected('invalid value for %s: %r' % (rule.key, value), rule.key, value)
        nearest = rule.nearest(num)
        if abs(num - nearest) > rule.threshold:
            raise ParameterRejected('invalid value for %s: %r (no value within %r)' % (
                rule.key, value, rule.threshold), rule.key, value)
        return nearest

    raise TypeError('unknown parameter rule %r' % (rule, ))


class FilteredParams(object):
    """
    Normalized parameters of a request.

    :ivar values: normalized values, in the order of the rules
    :ivar key: canonical key fragment (``KEY=value&KEY2=value``)
    :ivar hashed_key: SHA-1 of `key`, ``None`` without parameters
    """
    def __init__(self, values):
        self.values = values
        self.key = '&'.join('%s=%s' % (k, v) for k, v in values.items())
        if self.key:
            self.hashed_key = hashlib.sha1(self.key.encode('utf-8')).hexdigest()
        else:
            self.hashed_key = None

    def request_params(self):
        """
        The normalized values as string parameters for the backend request.
        """
        return dict((k, str(v)) for k, v in self.values.items())

    def __eq__(self, other):
        if not isinstance(other, FilteredParams):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def __repr__(self):
        return 'FilteredParams(%r)' % (self.key, )


class ParameterFilters(object):
    """
    Applies all parameter rules of a layer to request parameters.
    """
    def __init__(self, rules=None):
        self.rules = list(rules or [])
        keys = [r.key.lower() for r in self.rules]
        if len(set(keys)) != len(keys):
            raise ValueError('duplicate parameter filter in %r' % (self.rules, ))

    def filter(self, raw_params=None):
        """
        Returns the `FilteredParams` for `raw_params`. Parameters without
        a rule are ignored.

        :raises ParameterRejected: if one parameter does not match its rule
        """
        if not isinstance(raw_params, NoCaseMultiDict):
            raw_params = NoCaseMultiDict(raw_params or ())
        values = OrderedDict()
        for rule in self.rules:
            values[rule.key.upper()] = normalize(rule, raw_params.get(rule.key))
        return FilteredParams(values)

    def __bool__(self):
        return bool(self.rules)

    def __repr__(self):
        return 'ParameterFilters(%r)' % (self.rules, )


def parameter_rule_from_conf(key, conf):
    """
    Create a parameter rule from a configuration dict.

    >>> parameter_rule_from_conf('elevation', {'type': 'float', 'values': [1, 2], 'threshold': 0.1})
    FloatParameterRule('elevation', default=1.0)
    """
    kind = conf.get('type', STRING)
    if kind == STRING:
        return StringParameterRule(key, conf['values'], default=conf.get('default'))
    if kind == REGEX:
        return RegexParameterRule(key, conf['regex'], default=conf.get('default'))
    if kind == FLOAT:
        return FloatParameterRule(key, conf['values'], threshold=conf.get('threshold', 0.0),
                                  default=conf.get('default'))
    raise ValueError('unknown parameter filter type %r for %s' % (kind, key))

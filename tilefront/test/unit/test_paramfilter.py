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

import pytest

from tilefront.paramfilter import (
    FilteredParams,
    FloatParameterRule,
    ParameterFilters,
    ParameterRejected,
    RegexParameterRule,
    StringParameterRule,
    normalize,
    parameter_rule_from_conf,
)


class TestFloatRule(object):
    def setup_method(self):
        self.rule = FloatParameterRule('elevation', [4.0, 1.0, 2.0], threshold=0.2)

    def test_sorted_values(self):
        assert self.rule.values == [1.0, 2.0, 4.0]

    def test_snap_to_nearest(self):
        assert normalize(self.rule, '1.19') == 1.0
        assert normalize(self.rule, '0.8') == 1.0
        assert normalize(self.rule, '3.85') == 4.0

    def test_outside_threshold(self):
        with pytest.raises(ParameterRejected) as excinfo:
            normalize(self.rule, '1.21')
        assert excinfo.value.param == 'elevation'
        assert excinfo.value.value == '1.21'

    def test_not_a_number(self):
        with pytest.raises(ParameterRejected):
            normalize(self.rule, 'high')
        with pytest.raises(ParameterRejected):
            normalize(self.rule, 'nan')

    def test_default(self):
        assert normalize(self.rule, None) == 1.0
        rule = FloatParameterRule('elevation', [1.0, 2.0], default=2)
        assert normalize(rule, '') == 2.0

    def test_exact_threshold(self):
        rule = FloatParameterRule('elevation', [1.0], threshold=0.0)
        assert normalize(rule, '1') == 1.0
        with pytest.raises(ParameterRejected):
            normalize(rule, '1.0001')


class TestStringRule(object):
    def test_allowed(self):
        rule = StringParameterRule('styles', ['day', 'night'])
        assert normalize(rule, 'night') == 'night'
        assert normalize(rule, None) == 'day'

    def test_rejected(self):
        rule = StringParameterRule('styles', ['day', 'night'])
        with pytest.raises(ParameterRejected):
            normalize(rule, 'Night')

    def test_explicit_default(self):
        rule = StringParameterRule('styles', ['day', 'night'], default='night')
        assert normalize(rule, None) == 'night'

    def test_no_values(self):
        with pytest.raises(ValueError):
            StringParameterRule('styles', [])


class TestRegexRule(object):
    def test_full_match(self):
        rule = RegexParameterRule('time', r'\d{4}-\d{2}-\d{2}')
        assert normalize(rule, '2020-01-31') == '2020-01-31'
        with pytest.raises(ParameterRejected):
            normalize(rule, '2020-01-31T00:00')

    def test_missing_without_default(self):
        rule = RegexParameterRule('time', r'\d{4}')
        with pytest.raises(ParameterRejected):
            normalize(rule, None)

    def test_default(self):
        rule = RegexParameterRule('time', r'\d{4}', default='2000')
        assert normalize(rule, '') == '2000'

    def test_invalid_default(self):
        with pytest.raises(ValueError):
            RegexParameterRule('time', r'\d{4}', default='now')


class TestParameterFilters(object):
    def setup_method(self):
        self.filters = ParameterFilters([
            FloatParameterRule('elevation', [1.0, 2.0], threshold=0.2),
            StringParameterRule('styles', ['day', 'night']),
        ])

    def test_key(self):
        filtered = self.filters.filter({'ELEVATION': '1.19', 'styles': 'night', 'foo': 'bar'})
        assert filtered.key == 'ELEVATION=1.0&STYLES=night'
        assert filtered.request_params() == {'ELEVATION': '1.0', 'STYLES': 'night'}
        assert len(filtered.hashed_key) == 40

    def test_same_key_for_similar_values(self):
        one = self.filters.filter({'elevation': '1.1'})
        two = self.filters.filter({'Elevation': '0.9', 'STYLES': 'day'})
        assert one == two
        assert hash(one) == hash(two)
        assert one.hashed_key == two.hashed_key

    def test_rejected(self):
        with pytest.raises(ParameterRejected):
            self.filters.filter({'elevation': '1.5'})

    def test_no_rules(self):
        filters = ParameterFilters()
        assert not filters
        filtered = filters.filter({'elevation': '1.5'})
        assert filtered.key == ''
        assert filtered.hashed_key is None
        assert filtered.request_params() == {}

    def test_duplicate_rules(self):
        with pytest.raises(ValueError):
            ParameterFilters([
                StringParameterRule('styles', ['a']),
                StringParameterRule('STYLES', ['b']),
            ])


class TestRuleFromConf(object):
    def test_string(self):
        rule = parameter_rule_from_conf('styles', {'type': 'string', 'values': ['a', 'b']})
        assert isinstance(rule, StringParameterRule)
        assert rule.default == 'a'

    def test_regex(self):
        rule = parameter_rule_from_conf('time', {'type': 'regex', 'regex': '[0-9]+', 'default': '1'})
        assert isinstance(rule, RegexParameterRule)
        assert rule.default == '1'

    def test_float(self):
        rule = parameter_rule_from_conf('elevation', {'type': 'float', 'values': [1, 2],
                                                      'threshold': 0.5})
        assert isinstance(rule, FloatParameterRule)
        assert rule.threshold == 0.5

    def test_unknown(self):
        with pytest.raises(ValueError):
            parameter_rule_from_conf('foo', {'type': 'date', 'values': [1]})


def test_filtered_params_repr():
    assert repr(FilteredParams({})) == "FilteredParams('')"

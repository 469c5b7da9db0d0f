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


class MapQuery(object):
    """
    Internal query for a map with a specific extent, size, srs, etc.

    :param params: additional request parameters for the backend
        (normalized parameter filter values, format modifier params)
    """
    def __init__(self, bbox, size, srs, format='image/png', params=None):
        self.bbox = bbox
        self.size = size
        self.srs = srs
        self.format = format
        self.params = params or {}

    def params_for_request(self, names=None):
        """
        Return subset of the params, or all params if `names` is ``None``.

        >>> mq = MapQuery(None, None, None, params={'Foo': 1, 'bar': 2})
        >>> mq.params_for_request(set(['FOO', 'baz']))
        {'Foo': 1}
        """
        if names is None:
            return dict(self.params)
        names = [p.lower() for p in names]
        return dict((k, v) for k, v in self.params.items() if k.lower() in names)

    def __repr__(self):
        serialized_params = ", ".join(["'%s': '%s'" % (key, value) for (key, value) in self.params.items()])
        return ("MapQuery(bbox=%s, size=%s, srs=%r, format=%s, params={%s})" % (
            self.bbox, self.size, self.srs, self.format, serialized_params))

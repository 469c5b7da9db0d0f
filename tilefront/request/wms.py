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
WMS GetMap requests for backend servers.
"""
from tilefront.request.base import RequestParams, BaseRequest, split_mime_type
from tilefront.srs import SRS

import logging
log = logging.getLogger('tilefront.request')


class WMSMapRequestParams(RequestParams):
    """
    This class represents key-value parameters for WMS map requests.

    All values can be accessed as a property.
    Some properties return processed values. ``size`` returns a tuple of the width
    and height, ``layers`` returns a list of all layers, etc.
    """
    def _get_layers(self):
        """
        List with all layer names.
        """
        return sum((layers.split(',') for layers in self.params.get_all('layers')), [])

    def _set_layers(self, layers):
        if isinstance(layers, (list, tuple)):
            layers = ','.join(layers)
        self.params['layers'] = layers
    layers = property(_get_layers, _set_layers)
    del _get_layers
    del _set_layers

    def _get_bbox(self):
        """
        ``bbox`` as a tuple (minx, miny, maxx, maxy).
        """
        if 'bbox' not in self.params or self.params['bbox'] is None:
            return None
        points = map(float, self.params['bbox'].split(','))
        return tuple(points)

    def _set_bbox(self, value):
        if value is not None and not isinstance(value, str):
            value = ','.join(repr(float(x)) for x in value)
        self['bbox'] = value
    bbox = property(_get_bbox, _set_bbox)
    del _get_bbox
    del _set_bbox

    def _get_size(self):
        """
        Size of the request in pixel as a tuple (width, height),
        or None if one is missing.
        """
        if 'height' not in self or 'width' not in self:
            return None
        width = int(float(self.params['width']))
        height = int(float(self.params['height']))
        return (width, height)

    def _set_size(self, value):
        self['width'] = str(value[0])
        self['height'] = str(value[1])
    size = property(_get_size, _set_size)
    del _get_size
    del _set_size

    def _get_srs(self):
        return self.params.get('srs', None)

    def _set_srs(self, srs):
        if hasattr(srs, 'srs_code'):
            self.params['srs'] = srs.srs_code
        else:
            self.params['srs'] = srs
    srs = property(_get_srs, _set_srs)
    del _get_srs
    del _set_srs

    def _get_format(self):
        """
        The requested format as string (w/o any 'image/', 'text/', etc prefixes)
        """
        _mime_class, format, options = split_mime_type(self.get('format', default=''))
        return format

    def _set_format(self, format):
        if '/' not in format:
            format = 'image/' + format
        self['format'] = format
    format = property(_get_format, _set_format)
    del _get_format
    del _set_format

    @property
    def format_mime_type(self):
        return self.get('format')

    def __repr__(self):
        return '%s(param=%r)' % (self.__class__.__name__, self.params)


class WMSMapRequest(BaseRequest):
    """
    Base class for all WMS GetMap requests.

    :ivar fixed_params: parameters that are fixed for a request
    """
    request_params = WMSMapRequestParams
    fixed_params = {'request': 'GetMap', 'service': 'WMS'}

    def adapt_params_to_version(self):
        params = self.params.copy()
        for key, value in self.fixed_params.items():
            params[key] = value
        if 'styles' not in params:
            params['styles'] = ''
        return params

    @property
    def query_string(self):
        return self.adapt_params_to_version().query_string


class WMS111MapRequest(WMSMapRequest):
    version = '1.1.1'
    fixed_params = {'request': 'GetMap', 'version': '1.1.1', 'service': 'WMS'}


def switch_bbox_epsg_axis_order(bbox, srs):
    """
    >>> switch_bbox_epsg_axis_order((8.0, 53.0, 9.0, 54.0), 'EPSG:4326')
    (53.0, 8.0, 54.0, 9.0)
    >>> switch_bbox_epsg_axis_order((8.0, 53.0, 9.0, 54.0), 'EPSG:3857')
    (8.0, 53.0, 9.0, 54.0)
    """
    if bbox is not None and srs is not None:
        if SRS(srs).is_axis_order_ne:
            return bbox[1], bbox[0], bbox[3], bbox[2]
    return bbox


class WMS130MapRequestParams(WMSMapRequestParams):
    """
    RequestParams for WMS 1.3.0 GetMap requests. Handles bbox axis-order.
    """
    def switch_bbox(self):
        self.bbox = switch_bbox_epsg_axis_order(self.bbox, self.srs)


class WMS130MapRequest(WMSMapRequest):
    version = '1.3.0'
    request_params = WMS130MapRequestParams
    fixed_params = {'request': 'GetMap', 'version': '1.3.0', 'service': 'WMS'}

    def adapt_params_to_version(self):
        params = WMSMapRequest.adapt_params_to_version(self)
        params.switch_bbox()
        if 'srs' in params:
            params['crs'] = params['srs']
            del params['srs']
        return params


request_classes = {
    '1.1.1': WMS111MapRequest,
    '1.3.0': WMS130MapRequest,
}


def create_request_template(url, params, version='1.1.1'):
    """
    Create a GetMap request template for the backend `url`.

    >>> req = create_request_template('http://localhost/wms', {'layers': 'roads'})
    >>> req.params.layers
    ['roads']
    """
    if version not in request_classes:
        raise ValueError('unsupported WMS version %r' % (version, ))
    return request_classes[version](param=params, url=url)

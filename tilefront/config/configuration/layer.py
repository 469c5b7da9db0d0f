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

from tilefront.cache.tile import ExpirationPolicy, TileManager
from tilefront.client.http import HTTPClient, auth_data_from_url
from tilefront.client.wms import WMSClient
from tilefront.config.configuration.base import ConfigurationBase, ConfigurationError
from tilefront.config.configuration.base import wms_color
from tilefront.image.opts import FormatModifier, FormatModifiers, ImageOptions
from tilefront.layer import TileLayer
from tilefront.paramfilter import ParameterFilters, parameter_rule_from_conf
from tilefront.request.wms import create_request_template
from tilefront.source.wms import BackendTarget, WMSSource
from tilefront.tilefilter import (
    FileMaskSource,
    RasterMaskFilter,
    RequestFilterChain,
    WMSMaskSource,
    ZoomLevelFilter,
)
from tilefront.util.py import memoize

import logging
log = logging.getLogger('tilefront.config')


class LayerConfiguration(ConfigurationBase):
    defaults = {
        'grids': ['GLOBAL_WEBMERCATOR'],
        'formats': {'image/png': None},
    }

    @property
    def name(self):
        return self.conf['name']

    @memoize
    def http_client(self):
        wms_conf = self.conf['wms']
        g = self.context.globals
        timeout = g.get_value('timeout', wms_conf, global_key='http.client_timeout')
        headers = dict(g.get_value('http.headers') or {})
        headers.update(wms_conf.get('headers') or {})
        insecure = g.get_value('ssl_no_cert_checks', wms_conf,
                               global_key='http.ssl_no_cert_checks')
        ssl_ca_certs = g.get_value('http.ssl_ca_certs')
        if ssl_ca_certs:
            ssl_ca_certs = g.abspath(ssl_ca_certs)
        hide_error_details = g.get_value('http.hide_error_details')

        urls = wms_conf['urls']
        url, (username, password) = auth_data_from_url(urls[0])
        client = HTTPClient(url, username=username, password=password, insecure=insecure,
                            ssl_ca_certs=ssl_ca_certs, timeout=timeout, headers=headers,
                            hide_error_details=hide_error_details)
        # mirrors can have their own credentials
        for mirror_url in urls[1:]:
            url, (username, password) = auth_data_from_url(mirror_url)
            client.add_credentials(url, username, password)
        return client

    @memoize
    def source(self):
        wms_conf = self.conf['wms']
        urls = [auth_data_from_url(url)[0] for url in wms_conf['urls']]

        params = {
            'layers': wms_conf['layers'],
            'styles': wms_conf.get('styles', ''),
        }
        if 'transparent' in wms_conf:
            params['transparent'] = str(bool(wms_conf['transparent'])).lower()
        for key, value in (wms_conf.get('params') or {}).items():
            params[key] = str(value)

        version = wms_conf.get('version', '1.1.1')
        try:
            request_template = create_request_template(urls[0], params, version=version)
        except ValueError as ex:
            raise ConfigurationError('layer %s: %s' % (self.name, ex))

        client = WMSClient(request_template, http_client=self.http_client())
        default_expiration = self.context.globals.get_value('tiles.default_expiration')
        image_opts = ImageOptions(transparent=wms_conf.get('transparent'))
        return WMSSource(client, BackendTarget(urls), image_opts=image_opts,
                         default_expiration=default_expiration)

    @memoize
    def format_modifiers(self):
        modifiers = FormatModifiers()
        for format, conf in self.conf['formats'].items():
            conf = conf or {}
            bgcolor = conf.get('bgcolor')
            try:
                if bgcolor is not None:
                    bgcolor = wms_color(bgcolor)
                modifiers.add(FormatModifier(
                    format,
                    request_format=conf.get('request_format'),
                    transparent=conf.get('transparent'),
                    bgcolor=bgcolor,
                    palette=conf.get('palette'),
                    compression_quality=conf.get('compression_quality'),
                ))
            except ValueError as ex:
                raise ConfigurationError('layer %s, format %s: %s' % (self.name, format, ex))
        return modifiers

    @memoize
    def param_filters(self):
        rules = []
        for conf in self.conf.get('parameter_filters') or []:
            try:
                rules.append(parameter_rule_from_conf(conf['key'], conf))
            except (ValueError, KeyError) as ex:
                raise ConfigurationError('layer %s, parameter filter %s: %s' % (
                    self.name, conf.get('key'), ex))
        try:
            return ParameterFilters(rules)
        except ValueError as ex:
            raise ConfigurationError('layer %s: %s' % (self.name, ex))

    @memoize
    def request_filters(self, grid_name):
        filters = []
        for conf in self.conf.get('request_filters') or []:
            if conf.get('grid') not in (None, grid_name):
                continue
            if conf['type'] == 'zoom':
                filters.append(ZoomLevelFilter(conf['name'], zoom_start=conf.get('zoom_start'),
                                               zoom_stop=conf.get('zoom_stop')))
            elif conf['type'] == 'raster_mask':
                filters.append(self._raster_mask_filter(conf, grid_name))
            else:
                raise ConfigurationError('layer %s: unknown request filter type %r' % (
                    self.name, conf['type']))
        return RequestFilterChain(filters)

    def _raster_mask_filter(self, conf, grid_name):
        grid = self.context.grids[grid_name].tile_grid()
        if conf.get('source', 'file') == 'wms':
            mask_source = WMSMaskSource(self.source())
        else:
            g = self.context.globals
            directory = conf.get('directory')
            if directory:
                directory = g.abspath(directory)
            else:
                directory = g.get_value('tiles.mask_dir')
            if not directory:
                raise ConfigurationError('layer %s: no directory for raster mask %s' % (
                    self.name, conf['name']))
            mask_source = FileMaskSource(directory, self.name, grid_name,
                                         ext=conf.get('ext', 'png'))
            if not os.path.isdir(directory):
                log.warning('mask directory %s for layer %s does not exist', directory, self.name)

        zoom_stop = conf.get('zoom_stop', grid.zoom_stop)
        if zoom_stop > grid.zoom_stop:
            raise ConfigurationError('layer %s: zoom_stop of raster mask %s beyond grid %s' % (
                self.name, conf['name'], grid_name))
        return RasterMaskFilter(conf['name'], grid, mask_source,
                                zoom_start=conf.get('zoom_start', grid.zoom_start),
                                zoom_stop=zoom_stop, preload=conf.get('preload', False))

    @memoize
    def expiration(self):
        return ExpirationPolicy(expire_cache=self.conf.get('expire_cache'),
                                expire_clients=self.conf.get('expire_clients'))

    @memoize
    def tile_managers(self):
        g = self.context.globals
        meta_size = g.get_value('meta_size', self.conf, global_key='tiles.meta_size')
        meta_buffer = g.get_value('meta_buffer', self.conf, global_key='tiles.meta_buffer')
        max_meta_tiles = g.get_value('tiles.max_meta_tiles')
        formats = list(self.conf['formats'])

        tile_managers = {}
        for grid_name in self.conf['grids']:
            if grid_name not in self.context.grids:
                raise ConfigurationError('unknown grid %s for layer %s' % (grid_name, self.name))
            grid = self.context.grids[grid_name].tile_grid()
            tile_managers[grid_name] = TileManager(
                grid, self.source(), format=formats[0],
                meta_size=meta_size, meta_buffer=meta_buffer,
                request_filters=self.request_filters(grid_name),
                param_filters=self.param_filters(),
                format_modifiers=self.format_modifiers(),
                expiration=self.expiration(),
                max_meta_tiles=max_meta_tiles,
                identifier='%s_%s' % (self.name, grid_name),
                image_opts=self.source().image_opts,
            )
        return tile_managers

    @memoize
    def tile_layer(self):
        return TileLayer(self.name, self.tile_managers(), formats=list(self.conf['formats']),
                         title=self.conf.get('title'))

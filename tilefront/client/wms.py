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
WMS client for backend map requests.
"""
from tilefront.source import SourceError
from tilefront.client.http import HTTPClient

import logging
log = logging.getLogger('tilefront.source.wms')


class WMSClient(object):
    """
    Composes GetMap requests from a request template and a `MapQuery`.

    The template contains the static parameters of a layer (layers, styles,
    version, extra params). The URL is passed for each request, so that one
    client can be used for all mirrors of a backend.
    """
    def __init__(self, request_template, http_client=None):
        self.request_template = request_template
        self.http_client = http_client or HTTPClient()

    def retrieve(self, query, format, url=None, timeout=None):
        url = self.query_url(query, format, url=url)
        resp = self.http_client.open(url, timeout=timeout)
        self._check_resp(resp, url)
        return resp

    def _check_resp(self, resp, url):
        if not resp.headers.get('Content-type', 'image/').startswith('image/'):
            # log response depending on content-type
            if resp.headers['Content-type'].startswith(('text/', 'application/vnd.ogc')):
                log_size = 8000  # larger xml exception
            else:
                log_size = 100  # image?
            data = resp.read(log_size+1)

            truncated = ''
            if len(data) == log_size+1:
                data = data[:-1]
                truncated = ' [output truncated]'

            data = data.decode('utf-8', 'backslashreplace')

            log.warning("no image returned from source WMS: {}, response was: '{}'{}".format(
                url, data, truncated))
            raise SourceError('no image returned from source WMS: %s' % (url, ))

    def query_url(self, query, format, url=None):
        return self._query_req(query, format, url=url).complete_url

    def _query_req(self, query, format, url=None):
        req = self.request_template.copy()
        if url is not None:
            req.url = url
        req.params.bbox = query.bbox
        req.params.size = query.size
        req.params.srs = query.srs.srs_code
        req.params.format = format
        req.params.update(query.params_for_request())
        return req

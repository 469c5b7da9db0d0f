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
Retrieve meta tile images from mirrored WMS servers.
"""
import re
import socket
import threading
from io import BytesIO

from PIL import Image

from tilefront.client.http import HTTPClientError, HTTPClientTimeout
from tilefront.config import base_config
from tilefront.image import ImageSource
from tilefront.image.opts import ImageOptions
from tilefront.source import (
    SourceError,
    BackendError,
    BackendUnreachable,
    BackendTimeout,
    DecodeFailed,
)

import logging
log = logging.getLogger('tilefront.source.wms')

DEFAULT_EXPIRATION = 7200

_max_age_re = re.compile(r'max-age=(\d+)', re.IGNORECASE)


def max_age_from_header(cache_control):
    """
    Returns the max-age of a Cache-Control header in seconds, or ``None``.

    >>> max_age_from_header('public, max-age=3600')
    3600
    >>> max_age_from_header('Max-Age=60, s-maxage=10')
    60
    >>> max_age_from_header('no-cache') is None
    True
    >>> max_age_from_header(None) is None
    True
    """
    if not cache_control:
        return None
    m = _max_age_re.search(cache_control)
    if m is None:
        return None
    return int(m.group(1))


class BackendTarget(object):
    """
    The mirror URLs of one backend with a round-robin cursor.

    The cursor is shared by all requests to this target and advances
    once for each `next_start` call, regardless of the request result.
    """
    def __init__(self, urls):
        self.urls = list(urls)
        if not self.urls:
            raise ValueError('backend target needs at least one URL')
        self._cursor = 0
        self._lock = threading.Lock()

    def next_start(self):
        """
        Returns the current cursor position and advances the cursor.
        """
        with self._lock:
            start = self._cursor
            self._cursor = (self._cursor + 1) % len(self.urls)
        return start

    @property
    def cursor(self):
        return self._cursor

    def urls_from(self, start):
        """
        All URLs, starting with the URL at position `start`.

        >>> BackendTarget(['a', 'b', 'c']).urls_from(1)
        ['b', 'c', 'a']
        """
        n = len(self.urls)
        return [self.urls[(start + i) % n] for i in range(n)]

    def __repr__(self):
        return 'BackendTarget(%r)' % (self.urls, )


class FetchResult(object):
    """
    Result of a successful backend request.

    :ivar image: the decoded image as `ImageSource`
    :ivar expiration: expiration in seconds, ``None`` if not requested
    :ivar url: URL of the successful request
    """
    def __init__(self, image, expiration=None, url=None):
        self.image = image
        self.expiration = expiration
        self.url = url

    def __repr__(self):
        return 'FetchResult(%r, expiration=%r, url=%r)' % (self.image, self.expiration, self.url)


class WMSSource(object):
    """
    Requests meta tile images from one of the mirrors of `target`. Failing
    mirrors are skipped, each mirror is requested at most once per fetch.
    """

    def __init__(self, client, target, image_opts=None, timeout=None,
                 default_expiration=None):
        self.client = client
        self.target = target
        self.image_opts = image_opts or ImageOptions()
        self.timeout = timeout
        self.default_expiration = default_expiration

    def fetch(self, query, timeout=None, save_expiration=False):
        """
        Fetch the image for `query`.

        :param timeout: timeout for each backend request in seconds
        :param save_expiration: extract the expiration from the
            Cache-Control header of the response
        :rtype: `FetchResult`
        :raises BackendError: if all mirrors failed. The kind of the error
            (`BackendUnreachable`, `BackendTimeout`, `DecodeFailed`) is the
            kind of the last attempt.
        """
        if timeout is None:
            timeout = self.timeout
        format = query.format or self.image_opts.format
        start = self.target.next_start()
        attempts = []
        for url in self.target.urls_from(start):
            try:
                return self._fetch(url, query, format, timeout, save_expiration)
            except BackendError as ex:
                log.warning('could not retrieve WMS map: %s', ex)
                attempts.append(ex)

        last = attempts[-1]
        raise last.__class__('all %d backend requests failed, last error: %s' % (
            len(attempts), last), url=last.url, attempts=attempts)

    def _fetch(self, url, query, format, timeout, save_expiration):
        try:
            resp = self.client.retrieve(query, format, url=url, timeout=timeout)
            data = resp.read()
        except HTTPClientTimeout as ex:
            raise BackendTimeout(ex.full_msg or ex.args[0], url=url) from ex
        except HTTPClientError as ex:
            raise BackendUnreachable(ex.full_msg or ex.args[0], url=url) from ex
        except socket.timeout as ex:
            raise BackendTimeout('timeout while reading response from %s' % (url, ), url=url) from ex
        except SourceError as ex:
            raise DecodeFailed(ex.args[0], url=url) from ex
        except OSError as ex:
            raise BackendUnreachable('error while reading response from %s: %r' % (url, ex),
                                     url=url) from ex

        image = self._decode(data, url)

        expiration = None
        if save_expiration:
            expiration = max_age_from_header(resp.headers.get('Cache-Control'))
            if expiration is None:
                expiration = self.default_expiration
                if expiration is None:
                    expiration = base_config().tiles.get('default_expiration', DEFAULT_EXPIRATION)
                log.warning('backend response from %s without Cache-Control max-age,'
                            ' using expiration of %d seconds', url, expiration)
            else:
                log.debug('expiration from backend Cache-Control max-age: %d', expiration)

        return FetchResult(image, expiration=expiration, url=url)

    def _decode(self, data, url):
        try:
            img = Image.open(BytesIO(data))
            img.load()
        except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as ex:
            raise DecodeFailed('unable to decode image from %s: %s' % (url, ex), url=url) from ex
        return ImageSource(img, size=img.size, image_opts=self.image_opts)

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

import copy

from PIL import Image, ImageColor


class ImageOptions(object):
    def __init__(self, mode=None, transparent=None, format=None, bgcolor=None,
                 colors=None, encoding_options=None):
        self.transparent = transparent
        if format is not None:
            format = ImageFormat(format)
        self.format = format
        self.mode = mode
        self.bgcolor = bgcolor
        self.colors = colors
        self.encoding_options = encoding_options or {}

    def __repr__(self):
        options = []
        for k in sorted(self.__dict__):
            v = getattr(self, k)
            if v is not None:
                options.append('%s=%r' % (k, v))
        return 'ImageOptions(%s)' % (', '.join(options), )

    def copy(self):
        return copy.copy(self)


class ImageFormat(str):
    def __new__(cls, value, *args, **keywargs):
        if isinstance(value, ImageFormat):
            return value
        return str.__new__(cls, value)

    @property
    def mime_type(self):
        if self.startswith('image/'):
            return self
        return 'image/' + self

    @property
    def ext(self):
        ext = self
        if '/' in ext:
            ext = ext.split('/', 1)[1]
        if ';' in ext:
            ext = ext.split(';', 1)[0]

        return ext.strip()

    def __eq__(self, other):
        if isinstance(other, str):
            other = ImageFormat(other)
        else:
            return NotImplemented

        return self.ext == other.ext

    def __ne__(self, other):
        return not (self == other)

    def __hash__(self):
        return hash(self.ext)


def create_image(size, image_opts=None):
    """
    Create a new image that is compatible with the given `image_opts`.
    Takes into account mode, transparent, bgcolor.
    """
    if image_opts is None:
        mode = 'RGB'
        bgcolor = (255, 255, 255)
    else:
        mode = image_opts.mode
        if mode in (None, 'P'):
            if image_opts.transparent:
                mode = 'RGBA'
            else:
                mode = 'RGB'

        bgcolor = image_opts.bgcolor or (255, 255, 255)

        if isinstance(bgcolor, str):
            bgcolor = ImageColor.getrgb(bgcolor)

        if image_opts.transparent and len(bgcolor) == 3:
            bgcolor = tuple(bgcolor) + (0, )

        if image_opts.mode == 'I':
            bgcolor = bgcolor[0]

    return Image.new(mode, size, bgcolor)


class FormatModifier(object):
    """
    Per output format adjustments of backend requests and tile encoding.

    :param format: the output format (mime type) this modifier applies to
    :param request_format: format for the backend request, if the backend
        should render another format (e.g. ``image/png`` for ``image/jpeg`` tiles)
    :param transparent: value of the TRANSPARENT request parameter
    :param bgcolor: value of the BGCOLOR request parameter (``0xRRGGBB``)
    :param palette: value of the PALETTE request parameter
    :param compression_quality: output quality between 0.0 and 1.0 (JPEG)
    """
    def __init__(self, format, request_format=None, transparent=None, bgcolor=None,
                 palette=None, compression_quality=None):
        self.format = ImageFormat(format)
        self.request_format = ImageFormat(request_format) if request_format else None
        self.transparent = transparent
        self.bgcolor = bgcolor
        self.palette = palette
        if compression_quality is not None:
            compression_quality = float(compression_quality)
            if not 0.0 < compression_quality <= 1.0:
                raise ValueError('compression_quality needs to be in (0.0, 1.0], got %r'
                                 % compression_quality)
        self.compression_quality = compression_quality

    @property
    def fetch_format(self):
        return self.request_format or self.format

    def request_params(self):
        """
        Additional request parameters for the backend request.

        >>> FormatModifier('image/png', transparent=True, bgcolor='0xff0000').request_params()
        {'transparent': 'true', 'bgcolor': '0xff0000'}
        """
        params = {}
        if self.transparent is not None:
            params['transparent'] = str(bool(self.transparent)).lower()
        if self.bgcolor is not None:
            params['bgcolor'] = self.bgcolor
        if self.palette is not None:
            params['palette'] = self.palette
        return params

    def image_opts(self):
        """
        Returns the `ImageOptions` for encoding tiles. ``transparent`` stays
        ``None`` if this modifier does not set it.
        """
        encoding_options = {}
        if self.compression_quality is not None:
            encoding_options['jpeg_quality'] = int(round(self.compression_quality * 100))
        return ImageOptions(format=self.format, transparent=self.transparent,
                            encoding_options=encoding_options)

    def __repr__(self):
        return 'FormatModifier(%r, request_format=%r)' % (self.format, self.request_format)


class FormatModifiers(object):
    def __init__(self, modifiers=None):
        self.modifiers = {}
        for modifier in modifiers or []:
            self.add(modifier)

    def add(self, modifier):
        assert modifier.format is not None
        self.modifiers[str(modifier.format.mime_type)] = modifier

    def modifier(self, format):
        """
        Returns the modifier for `format`, or a modifier without any
        modifications.
        """
        format = ImageFormat(format)
        modifier = self.modifiers.get(str(format.mime_type))
        if not modifier:
            modifier = FormatModifier(format)
        return modifier

    def __contains__(self, format):
        return str(ImageFormat(format).mime_type) in self.modifiers

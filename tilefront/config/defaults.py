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

image = dict(
    jpeg_quality = 90,
    paletted = True,
)

grid = dict(
    tile_size = (256, 256),
)

grids = dict(
    GLOBAL_GEODETIC=dict(
        srs='EPSG:4326', origin='sw', zoom_start=0, zoom_stop=20,
        name='GLOBAL_GEODETIC'
    ),
    GLOBAL_WEBMERCATOR=dict(
        srs='EPSG:3857', origin='sw', zoom_start=0, zoom_stop=20,
        name='GLOBAL_WEBMERCATOR'
    ),
)

tiles = dict(
    meta_size = (4, 4),
    meta_buffer = 0,
    # used when the backend sends no usable Cache-Control max-age
    default_expiration = 7200,
    # number of completed meta tiles kept for late concurrent requests
    max_meta_tiles = 512,
    mask_dir = None,
)

http = dict(
    client_timeout = 60,
    ssl_ca_certs = None,
    ssl_no_cert_checks = False,
    hide_error_details = True,
    headers = {},
)

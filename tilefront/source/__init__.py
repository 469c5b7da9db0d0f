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
Map sources for the tile layers.
"""


class SourceError(Exception):
    pass


class BackendError(SourceError):
    """
    Base class for errors of backend requests.

    :ivar url: the request URL of the failed attempt
    :ivar attempts: errors of all attempts, if the error is the result of
        a request to multiple mirrors
    """
    def __init__(self, msg, url=None, attempts=None):
        SourceError.__init__(self, msg)
        self.url = url
        self.attempts = attempts or []


class BackendUnreachable(BackendError):
    pass


class BackendTimeout(BackendError):
    pass


class DecodeFailed(BackendError):
    pass

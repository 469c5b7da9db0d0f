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

from tilefront.config import finish_base_config, load_default_config, local_base_config


@pytest.fixture(autouse=True)
def default_base_config(tmp_path):
    """
    Run each test with a fresh default base_config.
    """
    conf = load_default_config()
    conf.conf_base_dir = str(tmp_path)
    finish_base_config(conf)
    with local_base_config(conf):
        yield conf

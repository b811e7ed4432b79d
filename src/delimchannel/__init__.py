# Copyright 2021-2025, Francis Clairicia-Rose-Claire-Josephine
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
#
"""The easiest way to talk to a delimiter-framed text server in Python

delimchannel is a blocking TCP client channel which reads and writes delimiter-terminated text messages.
"""

from __future__ import annotations

__all__ = [
    "ChannelState",
    "DelimitedMessageChannel",
    "open_channel",
]

__author__ = "delimchannel maintainers"
__copyright__ = "Copyright (c) 2021-2025, Francis Clairicia-Rose-Claire-Josephine"
__deprecated__ = False
__license__ = "Apache-2.0"
__maintainer__ = "delimchannel maintainers"
__status__ = "Production"
__version__ = "1.0.0"

from .channel import ChannelState, DelimitedMessageChannel, open_channel

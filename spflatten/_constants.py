# -*- coding: utf-8 -*-
"""Constant values"""

from __future__ import annotations
import os

"""Copyright 2026 The spflatten Authors

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

   https://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License."""

__version__ = "1.0.0"

SPF_VERSION_TAG = "v=spf1"
EDNS_PAYLOAD_SIZE = 4096
DEFAULT_DNS_PORT = 53
DEFAULT_DNS_RESOLVER = "127.0.0.1:53"
DEFAULT_DNS_TIMEOUT = 2.0

env = os.environ

DNS_RESOLVER = DEFAULT_DNS_RESOLVER
if env.get("DNS_RESOLVER"):
    DNS_RESOLVER = env["DNS_RESOLVER"]

DNS_TIMEOUT = DEFAULT_DNS_TIMEOUT
if "DNS_TIMEOUT" in env:
    DNS_TIMEOUT = float(env["DNS_TIMEOUT"])

# -*- coding: utf-8 -*-

"""Flattens SPF records into lists of IP addresses"""

from __future__ import annotations

from collections.abc import Sequence

import spflatten._constants
from spflatten.spf import (
    SPFError,
    SPFInvalidRecord,
    SPFQueryFailed,
    SPFRecord,
    SPFRecordNotFound,
    SPFTooManyDNSLookups,
    flatten_spf,
    parse_spf_record,
    query_spf_record,
    resolve_spf_domain,
)
from spflatten.utils import (
    DNSException,
    DNSExceptionNXDOMAIN,
    deduplicate,
    get_address_family,
    is_valid_ip,
)

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


__version__ = spflatten._constants.__version__

__all__ = [
    "__version__",
    "DNSException",
    "DNSExceptionNXDOMAIN",
    "SPFError",
    "SPFInvalidRecord",
    "SPFQueryFailed",
    "SPFRecord",
    "SPFRecordNotFound",
    "SPFTooManyDNSLookups",
    "deduplicate",
    "flatten_spf",
    "format_ip_list",
    "get_address_family",
    "is_valid_ip",
    "output_to_file",
    "parse_spf_record",
    "query_spf_record",
    "resolve_spf_domain",
]


def format_ip_list(ips: Sequence[str], *, tags: bool = False) -> str:
    """
    Formats a flattened list of IP addresses, one per line

    Args:
        ips (list): IP addresses and ranges
        tags (bool): Prefix each entry with ``ip4:`` or ``ip6:``

    Returns:
        str: The formatted list
    """
    lines = []
    for ip in ips:
        if tags:
            lines.append(f"{get_address_family(ip)}:{ip}")
        else:
            lines.append(ip)
    return "\n".join(lines)


def output_to_file(path: str, content: str):
    """
    Write given content to the given path

    Args:
        path (str): A file path
        content (str): The text to write
    """
    with open(
        path, "w", newline="\n", encoding="utf-8", errors="ignore"
    ) as output_file:
        output_file.write(content)

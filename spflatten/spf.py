# -*- coding: utf-8 -*-
"""Sender Policy framework (SPF) record flattening"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional
from collections.abc import Iterator, Sequence

from spflatten._constants import SPF_VERSION_TAG
from spflatten.utils import (
    DNSException,
    deduplicate,
    get_txt_records,
    is_valid_ip,
    normalize_domain,
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


class SPFError(Exception):
    """Raised when a fatal SPF error occurs"""

    def __init__(self, msg: str, domain: Optional[str] = None):
        """
        Args:
            msg (str): The error message
            domain (str): The domain where the error occurred
        """
        self.domain = domain
        Exception.__init__(self, msg)

    def with_context(self, context: str) -> SPFError:
        """Returns an error of the same kind with ``context`` prepended"""
        return type(self)(f"{context}: {self}", self.domain)


class SPFQueryFailed(SPFError):
    """Raised when the DNS query for an SPF record fails"""


class SPFRecordNotFound(SPFError):
    """Raised when an SPF record could not be found"""


class SPFInvalidRecord(SPFError):
    """Raised when an SPF record does not start with the version tag"""


class SPFTooManyDNSLookups(SPFError):
    """Raised when flattening needs more DNS lookups than allowed"""


class SPFRecord(NamedTuple):
    """The mechanisms of an SPF record that can be flattened"""

    ip4: tuple[str, ...] = ()
    ip6: tuple[str, ...] = ()
    includes: tuple[str, ...] = ()


def parse_spf_record(record: str, domain: Optional[str] = None) -> SPFRecord:
    """
    Parses the ``ip4``, ``ip6``, and ``include`` mechanisms of an SPF record

    Mechanisms are matched case-sensitively, so the record is expected to be
    lowercase already. Malformed ``ip4`` and ``ip6`` values are dropped, and
    every other mechanism or modifier is ignored.

    Args:
        record (str): An SPF record
        domain (str): The domain that the SPF record came from

    Returns:
        SPFRecord: The parsed record

    Raises:
        :exc:`spflatten.spf.SPFInvalidRecord`
    """
    terms = record.split()
    if len(terms) == 0 or not terms[0].startswith(SPF_VERSION_TAG):
        raise SPFInvalidRecord(f"invalid SPF record: {record}", domain)

    ip4 = []
    ip6 = []
    includes = []
    for term in terms[1:]:
        if term.startswith("ip4:"):
            value = term[len("ip4:") :]
            if is_valid_ip(value, 4):
                ip4.append(value)
            else:
                logging.debug(f"Ignoring invalid ip4 value {value} on {domain}")
        elif term.startswith("ip6:"):
            value = term[len("ip6:") :]
            if is_valid_ip(value, 6):
                ip6.append(value)
            else:
                logging.debug(f"Ignoring invalid ip6 value {value} on {domain}")
        elif term.startswith("include:"):
            value = term[len("include:") :]
            if value:
                includes.append(value)

    return SPFRecord(tuple(ip4), tuple(ip6), tuple(includes))


def query_spf_record(
    domain: str,
    *,
    nameserver: Optional[str] = None,
    timeout: Optional[float] = None,
) -> SPFRecord:
    """
    Queries DNS for an SPF record and parses it

    The first TXT character-string that starts with ``v=spf1`` is used.

    Args:
        domain (str): A domain name
        nameserver (str): The resolver address, as ``host:port``
        timeout (float): number of seconds to wait for an answer from DNS

    Returns:
        SPFRecord: The parsed record

    Raises:
        :exc:`spflatten.spf.SPFQueryFailed`
        :exc:`spflatten.spf.SPFRecordNotFound`
        :exc:`spflatten.spf.SPFInvalidRecord`
    """
    logging.debug(f"Checking for a SPF record on {domain}")
    try:
        answers = get_txt_records(domain, nameserver=nameserver, timeout=timeout)
    except DNSException as error:
        raise SPFQueryFailed(f"DNS query failed: {error}", domain)

    spf_record = None
    for segments in answers:
        for segment in segments:
            if segment.lower().startswith(SPF_VERSION_TAG):
                spf_record = segment.lower()
                break
        if spf_record is not None:
            break
    if spf_record is None:
        raise SPFRecordNotFound("no SPF record found", domain)

    return parse_spf_record(spf_record, domain)


def _fetch_unvisited(
    domain: str,
    visited: set[str],
    *,
    nameserver: Optional[str] = None,
    timeout: Optional[float] = None,
    max_lookups: Optional[int] = None,
) -> Optional[SPFRecord]:
    """Marks a domain as visited and fetches its SPF record, unless seen before"""
    domain = normalize_domain(domain)
    if domain in visited:
        logging.debug(f"Skipping {domain}, which has already been resolved")
        return None
    visited.add(domain)
    if max_lookups is not None and len(visited) > max_lookups:
        raise SPFTooManyDNSLookups(
            f"resolving {domain} would exceed the limit of {max_lookups} "
            "DNS lookups",
            domain,
        )

    try:
        return query_spf_record(domain, nameserver=nameserver, timeout=timeout)
    except SPFError as error:
        raise error.with_context(
            f"unable to get the SPF record of {domain}"
        ) from error


def resolve_spf_domain(
    domain: str,
    visited: set[str],
    *,
    nameserver: Optional[str] = None,
    timeout: Optional[float] = None,
    max_lookups: Optional[int] = None,
) -> list[str]:
    """
    Collects the IP addresses authorized by a domain's SPF record and includes

    Includes are walked depth-first with an explicit stack. Domains in
    ``visited`` are skipped. Each domain is added to ``visited`` before its
    record is fetched, which stops include loops.

    Args:
        domain (str): A domain name
        visited (set): Domains already resolved during this flattening
        nameserver (str): The resolver address, as ``host:port``
        timeout (float): number of seconds to wait for an answer from DNS
        max_lookups (int): The maximum number of distinct domains to query

    Returns:
        list: The domain's ``ip4`` entries, its ``ip6`` entries, and then
        the entries of each of its includes, depth-first

    Raises:
        :exc:`spflatten.spf.SPFError`
    """
    options = dict(nameserver=nameserver, timeout=timeout, max_lookups=max_lookups)
    ips: list[str] = []
    record = _fetch_unvisited(domain, visited, **options)
    if record is None:
        return ips
    ips += record.ip4
    ips += record.ip6

    # pending[i] holds the includes still to walk below the include in path[i - 1]
    pending: list[Iterator[str]] = [iter(record.includes)]
    path: list[str] = []
    while pending:
        include = next(pending[-1], None)
        if include is None:
            pending.pop()
            if path:
                path.pop()
            continue
        try:
            record = _fetch_unvisited(include, visited, **options)
        except SPFError as error:
            context = ": ".join(
                f"failed to resolve include {name}" for name in path + [include]
            )
            raise error.with_context(context) from error
        if record is None:
            continue
        ips += record.ip4
        ips += record.ip6
        path.append(include)
        pending.append(iter(record.includes))

    return ips


def flatten_spf(
    ip4s: Sequence[str] = (),
    ip6s: Sequence[str] = (),
    includes: Sequence[str] = (),
    *,
    nameserver: Optional[str] = None,
    timeout: Optional[float] = None,
    max_lookups: Optional[int] = None,
) -> list[str]:
    """
    Flattens SPF includes and literal addresses into one list of IP addresses

    Literal addresses are used as given, without validation. A domain that
    is reached through more than one include is only resolved once.

    Args:
        ip4s (list): IPv4 addresses and ranges to start with
        ip6s (list): IPv6 addresses and ranges to start with
        includes (list): Domains whose SPF records are flattened
        nameserver (str): The resolver address, as ``host:port``
        timeout (float): number of seconds to wait for an answer from DNS
        max_lookups (int): The maximum number of distinct domains to query

    Returns:
        list: The distinct addresses and ranges, in the order first seen

    Raises:
        :exc:`spflatten.spf.SPFError`
    """
    ips = list(ip4s) + list(ip6s)

    visited: set[str] = set()
    for domain in includes:
        try:
            ips += resolve_spf_domain(
                domain,
                visited,
                nameserver=nameserver,
                timeout=timeout,
                max_lookups=max_lookups,
            )
        except SPFError as error:
            raise error.with_context(
                f"failed to resolve include domain {domain}"
            ) from error

    return deduplicate(ips)

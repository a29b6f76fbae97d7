# -*- coding: utf-8 -*-
"""DNS utility functions"""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
import unicodedata
from typing import Optional, Union
from collections.abc import Iterable

import dns.exception
import dns.flags
import dns.inet
import dns.message
import dns.name
import dns.query
import dns.rcode
import dns.rdatatype

from spflatten import _constants
from spflatten._constants import DEFAULT_DNS_PORT, EDNS_PAYLOAD_SIZE

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

ZERO_WIDTH_RE = re.compile(r"[\u200B-\u200D\uFEFF]")  # includes ZWSP, ZWNJ, ZWJ, BOM

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class DNSException(Exception):
    """Raised when a general DNS error occurs"""

    def __init__(self, error):
        if isinstance(error, dns.exception.Timeout) and "timeout" in error.kwargs:
            error.kwargs["timeout"] = round(error.kwargs["timeout"], 1)
        Exception.__init__(self, error)


class DNSExceptionNXDOMAIN(DNSException):
    """Raised when a NXDOMAIN DNS error (RCODE:3) occurs"""


def normalize_domain(domain: str) -> str:
    """
    Normalize an input domain by removing zero-width characters and lowering it

    Args:
        domain (str): A domain or subdomain

    Returns:
        str: A normalized domain
    """
    # 1. Normalize Unicode (NFC form for consistency)
    domain = unicodedata.normalize("NFC", domain)
    # 2. Remove zero-width and similar hidden chars
    domain = ZERO_WIDTH_RE.sub("", domain)
    # 3. Lowercase for case-insensitivity (domains are case-insensitive)
    return domain.lower()


def _parse_ip(ip: str) -> tuple[Optional[IPAddress], str]:
    """Splits off a CIDR suffix and parses what is left as an IP literal"""
    address = ip.split("/")[0]
    # Scoped IPv6 addresses are not literals that belong in an SPF record
    if "%" in address:
        return None, address
    try:
        return ipaddress.ip_address(address), address
    except ValueError:
        return None, address


def _fits_in_four_bytes(parsed: IPAddress) -> bool:
    if parsed.version == 4:
        return True
    return parsed.ipv4_mapped is not None


def is_valid_ip(ip: str, version: int) -> bool:
    """
    Checks if a string is an IP address or CIDR range of the given family

    The prefix length of a CIDR range is not checked.

    Args:
        ip (str): An IP address, optionally followed by ``/prefix``
        version (int): ``4`` or ``6``

    Returns:
        bool: ``True`` if the address belongs to the requested family
    """
    parsed, address = _parse_ip(ip)
    if parsed is None:
        return False
    if version == 4:
        return _fits_in_four_bytes(parsed)
    # IPv4-mapped addresses count as IPv4, so they never land here
    return not _fits_in_four_bytes(parsed) and ":" in address


def get_address_family(ip: str) -> str:
    """
    Returns the SPF mechanism name (``ip4`` or ``ip6``) for an address

    Anything that cannot be represented as an IPv4 address is tagged
    ``ip6``.
    """
    parsed, _ = _parse_ip(ip)
    if parsed is not None and _fits_in_four_bytes(parsed):
        return "ip4"
    return "ip6"


def deduplicate(values: Iterable[str]) -> list[str]:
    """
    Removes exact duplicates from a sequence, keeping the first occurrence

    Args:
        values: Strings to deduplicate

    Returns:
        list: The distinct values in first-seen order
    """
    return list(dict.fromkeys(values))


def _parse_port(port: str, nameserver: str) -> int:
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in DNS resolver address: {nameserver}")
    if not 0 < port_number < 65536:
        raise ValueError(f"Invalid port in DNS resolver address: {nameserver}")
    return port_number


def parse_nameserver(nameserver: str) -> tuple[str, int]:
    """
    Splits a DNS resolver address into a host and a port

    Accepted forms are ``host:port``, ``[ipv6]:port``, and a bare host or IP
    address, which uses port 53. Host names are not resolved here.

    Args:
        nameserver (str): The resolver address

    Returns:
        tuple: The host and the port

    Raises:
        :exc:`ValueError`
    """
    address = nameserver.strip()
    port = DEFAULT_DNS_PORT
    if address.startswith("["):
        host, closed, rest = address[1:].partition("]")
        if not closed or (rest and not rest.startswith(":")):
            raise ValueError(f"Invalid DNS resolver address: {nameserver}")
        if rest:
            port = _parse_port(rest[1:], nameserver)
    elif address.count(":") == 1:
        host, _, port_string = address.partition(":")
        port = _parse_port(port_string, nameserver)
    else:
        host = address
    if not host:
        raise ValueError(f"Invalid DNS resolver address: {nameserver}")
    return host, port


def _resolve_nameserver_host(host: str, port: int) -> str:
    """Returns the first IP address of a resolver given by name"""
    if dns.inet.is_address(host):
        return host
    addresses = socket.getaddrinfo(host, port, proto=socket.IPPROTO_UDP)
    return addresses[0][4][0]


def query_dns(
    domain: str,
    record_type: str,
    *,
    nameserver: Optional[str] = None,
    timeout: Optional[float] = None,
) -> dns.message.Message:
    """
    Sends a single recursive DNS query to a resolver

    The query advertises EDNS0 with a 4096 byte payload and without the
    DNSSEC OK flag. A truncated UDP answer is queried again over TCP.

    Args:
        domain (str): The domain or subdomain to query about
        record_type (str): The record type to query for
        nameserver (str): The resolver address, as ``host:port``
        timeout (float): Sets the DNS timeout in seconds

    Returns:
        dns.message.Message: The response, whatever its rcode

    Raises:
        :exc:`spflatten.utils.DNSException`
    """
    domain = normalize_domain(domain)
    record_type = record_type.upper()
    if nameserver is None:
        nameserver = _constants.DNS_RESOLVER
    if timeout is None:
        timeout = _constants.DNS_TIMEOUT
    logging.debug(f"Querying {nameserver} for {record_type} records on {domain}")
    try:
        host, port = parse_nameserver(nameserver)
        host = _resolve_nameserver_host(host, port)
        query = dns.message.make_query(
            dns.name.from_text(domain),
            record_type,
            use_edns=0,
            payload=EDNS_PAYLOAD_SIZE,
            want_dnssec=False,
        )
        response = dns.query.udp(query, host, port=port, timeout=timeout)
        if response.flags & dns.flags.TC:
            logging.debug(f"Truncated answer for {domain}, retrying over TCP")
            response = dns.query.tcp(query, host, port=port, timeout=timeout)
    except (dns.exception.DNSException, OSError, ValueError) as error:
        raise DNSException(error)

    return response


def get_txt_records(
    domain: str,
    *,
    nameserver: Optional[str] = None,
    timeout: Optional[float] = None,
) -> list[list[str]]:
    """
    Queries DNS for TXT records

    Args:
        domain (str): A domain name
        nameserver (str): The resolver address, as ``host:port``
        timeout (float): number of seconds to wait for an answer from DNS

    Returns:
        list: One ``list`` of character-strings per TXT record, in answer order

    Raises:
        :exc:`spflatten.utils.DNSException`
        :exc:`spflatten.utils.DNSExceptionNXDOMAIN`
    """
    response = query_dns(domain, "TXT", nameserver=nameserver, timeout=timeout)
    rcode = response.rcode()
    if rcode == dns.rcode.NXDOMAIN:
        raise DNSExceptionNXDOMAIN("DNS query returned error code: NXDOMAIN")
    if rcode != dns.rcode.NOERROR:
        raise DNSException(
            f"DNS query returned error code: {dns.rcode.to_text(rcode)}"
        )

    records = []
    for rrset in response.answer:
        if rrset.rdtype != dns.rdatatype.TXT:
            continue
        for rdata in rrset:
            records.append(
                [segment.decode(errors="replace") for segment in rdata.strings]
            )

    return records

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Flattens SPF records into a list of IP addresses"""

from __future__ import annotations

import sys
from argparse import ArgumentParser

import logging

from spflatten import (
    __version__,
    SPFError,
    flatten_spf,
    format_ip_list,
    output_to_file,
)
from spflatten import _constants
from spflatten.utils import parse_nameserver

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


def _main(argv=None):
    """Called when the module in executed"""
    arg_parser = ArgumentParser(description=__doc__)
    arg_parser.add_argument(
        "--ip4",
        action="append",
        default=[],
        help="an IPv4 address or range to include (can be used multiple times)",
    )
    arg_parser.add_argument(
        "--ip6",
        action="append",
        default=[],
        help="an IPv6 address or range to include (can be used multiple times)",
    )
    arg_parser.add_argument(
        "--include",
        action="append",
        default=[],
        help="a domain to include SPF records from (can be used multiple times)",
    )
    arg_parser.add_argument(
        "--tags",
        action="store_true",
        help="prefix each IP address with ip4: or ip6:",
    )
    arg_parser.add_argument(
        "-r",
        "--resolver",
        help="the DNS resolver to query, as host:port "
        f"(default {_constants.DNS_RESOLVER})",
        default=_constants.DNS_RESOLVER,
    )
    arg_parser.add_argument(
        "-t",
        "--timeout",
        help="number of seconds to wait for an answer from DNS "
        f"(default {_constants.DNS_TIMEOUT})",
        type=float,
        default=_constants.DNS_TIMEOUT,
    )
    arg_parser.add_argument(
        "--max-lookups",
        type=int,
        help="the maximum number of domains to query (default unlimited)",
    )
    arg_parser.add_argument(
        "-o",
        "--output",
        help="a file path to output to (silences screen output)",
    )
    arg_parser.add_argument("-v", "--version", action="version", version=__version__)
    arg_parser.add_argument(
        "--debug", action="store_true", help="enable debugging output"
    )

    args = arg_parser.parse_args(argv)

    logging_format = "%(asctime)s - %(levelname)s: %(message)s"
    logging.basicConfig(level=logging.WARNING, format=logging_format)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Debug output enabled")

    if not args.ip4 and not args.ip6 and not args.include:
        print(
            "Error: At least one --ip4, --ip6, or --include argument is required",
            file=sys.stderr,
        )
        arg_parser.print_usage(sys.stderr)
        sys.exit(1)

    try:
        parse_nameserver(args.resolver)
    except ValueError as error:
        print(f"Error: {error}", file=sys.stderr)
        sys.exit(1)

    try:
        ips = flatten_spf(
            args.ip4,
            args.ip6,
            args.include,
            nameserver=args.resolver,
            timeout=args.timeout,
            max_lookups=args.max_lookups,
        )
    except SPFError as error:
        print(f"Error: {error}", file=sys.stderr)
        sys.exit(1)

    results = format_ip_list(ips, tags=args.tags)
    if args.output is None:
        if results:
            print(results)
    else:
        output_to_file(args.output, f"{results}\n" if results else "")


if __name__ == "__main__":
    _main()

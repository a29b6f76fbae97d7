#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Automated tests"""

import importlib
import io
import os
import socket
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

import dns.exception
import dns.flags
import dns.message
import dns.name
import dns.rcode
import dns.rdatatype
import dns.rrset

import spflatten
import spflatten._cli
import spflatten._constants
import spflatten.spf
import spflatten.utils


def fake_txt_records(records):
    """Returns a list of queried domains and a fake TXT lookup over ``records``"""
    queried = []

    def get_txt_records(domain, **kwargs):
        queried.append(domain)
        if domain not in records:
            raise spflatten.utils.DNSExceptionNXDOMAIN(
                "DNS query returned error code: NXDOMAIN"
            )
        return records[domain]

    return queried, get_txt_records


def fake_udp(*rdatas, rcode=dns.rcode.NOERROR, truncated=False, sent=None):
    """Returns a fake ``dns.query.udp`` answering with TXT ``rdatas``"""

    def udp(query, where, port=53, timeout=None, **kwargs):
        if sent is not None:
            sent.append((query, where, port))
        response = dns.message.make_response(query)
        response.set_rcode(rcode)
        if rdatas:
            response.answer.append(
                dns.rrset.from_text(query.question[0].name, 300, "IN", "TXT", *rdatas)
            )
        if truncated:
            response.flags |= dns.flags.TC
        return response

    return udp


class Test(unittest.TestCase):
    def testIPFamilies(self):
        """IP addresses are only valid for their own family"""
        self.assertTrue(spflatten.is_valid_ip("203.0.113.5", 4))
        self.assertFalse(spflatten.is_valid_ip("203.0.113.5", 6))
        self.assertTrue(spflatten.is_valid_ip("2001:db8::1", 6))
        self.assertFalse(spflatten.is_valid_ip("2001:db8::1", 4))
        self.assertTrue(spflatten.is_valid_ip("203.0.113.5/24", 4))
        self.assertTrue(spflatten.is_valid_ip("2001:db8::/32", 6))
        self.assertFalse(spflatten.is_valid_ip("not-an-ip", 4))
        self.assertFalse(spflatten.is_valid_ip("not-an-ip", 6))
        self.assertFalse(spflatten.is_valid_ip("", 4))

    def testIPPrefixLengthNotChecked(self):
        """CIDR prefix lengths are not range checked"""
        self.assertTrue(spflatten.is_valid_ip("78.46.96.236/99", 4))
        self.assertTrue(spflatten.is_valid_ip("2001:db8::/130", 6))

    def testIPv4MappedAddresses(self):
        """IPv4-mapped IPv6 addresses count as IPv4"""
        self.assertTrue(spflatten.is_valid_ip("::ffff:192.0.2.1", 4))
        self.assertFalse(spflatten.is_valid_ip("::ffff:192.0.2.1", 6))
        self.assertEqual(spflatten.get_address_family("::ffff:192.0.2.1"), "ip4")

    def testInvalidIPs(self):
        """Malformed and scoped addresses are not valid"""
        self.assertFalse(spflatten.is_valid_ip("999.1.1.1", 4))
        self.assertFalse(spflatten.is_valid_ip("192.0.2", 4))
        self.assertFalse(spflatten.is_valid_ip("relay.mailchannels.net", 4))
        self.assertFalse(
            spflatten.is_valid_ip("1200:0000:AB00:1234:O000:2552:7777:1313", 6)
        )
        self.assertFalse(spflatten.is_valid_ip("fe80::1%eth0", 6))

    def testAddressFamily(self):
        """Addresses are tagged ip4 or ip6"""
        self.assertEqual(spflatten.get_address_family("192.0.2.1"), "ip4")
        self.assertEqual(spflatten.get_address_family("192.0.2.0/24"), "ip4")
        self.assertEqual(spflatten.get_address_family("2001:db8::/32"), "ip6")
        self.assertEqual(spflatten.get_address_family("garbage"), "ip6")

    def testDeduplicate(self):
        """Deduplication keeps first occurrences in order and is idempotent"""
        values = ["b", "a", "b", "c", "a", "d"]
        once = spflatten.deduplicate(values)
        self.assertEqual(once, ["b", "a", "c", "d"])
        self.assertEqual(spflatten.deduplicate(once), once)
        self.assertEqual(spflatten.deduplicate([]), [])

    def testParseSPFRecord(self):
        """ip4, ip6, and include mechanisms are parsed; the rest is ignored"""
        record = (
            "v=spf1 ip4:203.0.113.5 ip6:2001:db8::1 include:example.com a mx -all"
        )
        parsed = spflatten.parse_spf_record(record)
        self.assertEqual(parsed.ip4, ("203.0.113.5",))
        self.assertEqual(parsed.ip6, ("2001:db8::1",))
        self.assertEqual(parsed.includes, ("example.com",))

    def testParseInvalidSPFRecord(self):
        """Records without the version tag raise SPFInvalidRecord"""
        for record in ["not an spf record", "", "   ", "spf1 ip4:192.0.2.1"]:
            self.assertRaises(
                spflatten.SPFInvalidRecord,
                spflatten.parse_spf_record,
                record,
            )

    def testParseDropsInvalidValues(self):
        """Invalid ip4, ip6, and include values are dropped silently"""
        record = (
            "v=spf1 ip4:2001:db8::1 ip6:192.0.2.1 ip4:999.1.1.1 "
            "+ip4:192.0.2.9 include: ip4:192.0.2.0/24 redirect=example.net ~all"
        )
        parsed = spflatten.parse_spf_record(record, "example.com")
        self.assertEqual(parsed, spflatten.SPFRecord(("192.0.2.0/24",), (), ()))

    def testParseIsCaseSensitive(self):
        """Mechanisms are matched on an already lowercased record"""
        parsed = spflatten.parse_spf_record("v=spf1 IP4:192.0.2.1 ~all")
        self.assertEqual(parsed.ip4, ())

    def testQuerySPFRecord(self):
        """The first TXT string starting with v=spf1 is used, lowercased"""
        queried, get_txt_records = fake_txt_records(
            {
                "example.com": [
                    ["google-site-verification=abc"],
                    ["V=SPF1 IP4:192.0.2.1 INCLUDE:_SPF.Example.NET ~ALL"],
                    ["v=spf1 ip4:198.51.100.9 -all"],
                ]
            }
        )
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            record = spflatten.query_spf_record("example.com")
        self.assertEqual(record.ip4, ("192.0.2.1",))
        self.assertEqual(record.includes, ("_spf.example.net",))
        self.assertEqual(queried, ["example.com"])

    def testQuerySPFRecordUsesSingleString(self):
        """Only the matching character-string is parsed"""
        _, get_txt_records = fake_txt_records(
            {"example.com": [["v=spf1 ip4:192.0.2.1 ", "ip4:192.0.2.2 -all"]]}
        )
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            record = spflatten.query_spf_record("example.com")
        self.assertEqual(record.ip4, ("192.0.2.1",))

    def testQuerySPFRecordNotFound(self):
        """A domain without an SPF TXT record raises SPFRecordNotFound"""
        _, get_txt_records = fake_txt_records(
            {"example.com": [["v=DMARC1; p=none"], []]}
        )
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            with self.assertRaises(spflatten.SPFRecordNotFound) as context:
                spflatten.query_spf_record("example.com")
        self.assertEqual(context.exception.domain, "example.com")

    def testQuerySPFRecordFailure(self):
        """DNS errors raise SPFQueryFailed"""
        _, get_txt_records = fake_txt_records({})
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            with self.assertRaises(spflatten.SPFQueryFailed) as context:
                spflatten.query_spf_record("nonexistent.invalid")
        self.assertIn("NXDOMAIN", str(context.exception))

    def testQuerySPFRecordEmpty(self):
        """A bare version tag is a record with nothing to flatten"""
        _, get_txt_records = fake_txt_records({"example.com": [["v=spf1"]]})
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            record = spflatten.query_spf_record("example.com")
        self.assertEqual(record, spflatten.SPFRecord())

    def testResolveDepthFirst(self):
        """A domain's own addresses come before those of its includes"""
        queried, get_txt_records = fake_txt_records(
            {
                "a.example": [
                    [
                        "v=spf1 include:b.example ip6:2001:db8::1 "
                        "include:c.example ip4:192.0.2.1 -all"
                    ]
                ],
                "b.example": [["v=spf1 ip4:192.0.2.2 include:d.example ~all"]],
                "c.example": [["v=spf1 ip4:192.0.2.3 ~all"]],
                "d.example": [["v=spf1 ip4:192.0.2.4 ~all"]],
            }
        )
        visited = set()
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            ips = spflatten.resolve_spf_domain("a.example", visited)
        self.assertEqual(
            ips,
            ["192.0.2.1", "2001:db8::1", "192.0.2.2", "192.0.2.4", "192.0.2.3"],
        )
        self.assertEqual(queried, ["a.example", "b.example", "d.example", "c.example"])
        self.assertEqual(
            visited, {"a.example", "b.example", "c.example", "d.example"}
        )

    def testResolveIncludeLoop(self):
        """Include loops terminate and each address is returned once"""
        queried, get_txt_records = fake_txt_records(
            {
                "a.example": [["v=spf1 ip4:192.0.2.1 include:b.example -all"]],
                "b.example": [["v=spf1 ip4:192.0.2.2 include:A.Example -all"]],
            }
        )
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            ips = spflatten.resolve_spf_domain("a.example", set())
        self.assertEqual(ips, ["192.0.2.1", "192.0.2.2"])
        self.assertEqual(queried, ["a.example", "b.example"])

    def testResolveSelfInclude(self):
        """A domain that includes itself is only queried once"""
        queried, get_txt_records = fake_txt_records(
            {"example.com": [["v=spf1 ip4:192.0.2.1 include:example.com -all"]]}
        )
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            ips = spflatten.resolve_spf_domain("example.com", set())
        self.assertEqual(ips, ["192.0.2.1"])
        self.assertEqual(queried, ["example.com"])

    def testResolveVisitedDomain(self):
        """Visited domains are skipped without a DNS query"""
        with patch("spflatten.spf.get_txt_records") as get_txt_records:
            ips = spflatten.resolve_spf_domain("Example.COM", {"example.com"})
        self.assertEqual(ips, [])
        get_txt_records.assert_not_called()

    def testResolveMaxLookups(self):
        """An optional lookup limit stops the resolution"""
        _, get_txt_records = fake_txt_records(
            {
                "a.example": [["v=spf1 include:b.example include:c.example"]],
                "b.example": [["v=spf1 ip4:192.0.2.2"]],
                "c.example": [["v=spf1 ip4:192.0.2.3"]],
            }
        )
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            self.assertRaises(
                spflatten.SPFTooManyDNSLookups,
                spflatten.resolve_spf_domain,
                "a.example",
                set(),
                max_lookups=2,
            )
            ips = spflatten.resolve_spf_domain("a.example", set(), max_lookups=3)
        self.assertEqual(ips, ["192.0.2.2", "192.0.2.3"])

    def testFlattenManualOnly(self):
        """Manual addresses are returned without any DNS queries"""
        with patch("spflatten.spf.get_txt_records") as get_txt_records:
            self.assertEqual(
                spflatten.flatten_spf(["198.51.100.1"], [], []), ["198.51.100.1"]
            )
            self.assertEqual(
                spflatten.flatten_spf(["198.51.100.1", "198.51.100.1"], [], []),
                ["198.51.100.1"],
            )
        get_txt_records.assert_not_called()

    def testFlattenManualNotValidated(self):
        """Manual addresses are used verbatim"""
        ips = spflatten.flatten_spf(["not-an-ip"], ["192.0.2.1"], [])
        self.assertEqual(ips, ["not-an-ip", "192.0.2.1"])

    def testFlatten(self):
        """Manual addresses come first and shared includes are resolved once"""
        queried, get_txt_records = fake_txt_records(
            {
                "a.example": [
                    ["v=spf1 ip4:192.0.2.1 ip4:198.51.100.1 include:shared.example"]
                ],
                "b.example": [["v=spf1 ip6:2001:db8::b include:shared.example"]],
                "shared.example": [["v=spf1 ip4:192.0.2.99 ip6:2001:db8::99"]],
            }
        )
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            ips = spflatten.flatten_spf(
                ["198.51.100.1"], ["2001:db8::1"], ["a.example", "b.example"]
            )
        self.assertEqual(
            ips,
            [
                "198.51.100.1",
                "2001:db8::1",
                "192.0.2.1",
                "192.0.2.99",
                "2001:db8::99",
                "2001:db8::b",
            ],
        )
        self.assertEqual(queried, ["a.example", "shared.example", "b.example"])

    def testFlattenVisitedNotShared(self):
        """Separate flattening calls do not share visited domains"""
        queried, get_txt_records = fake_txt_records(
            {"example.com": [["v=spf1 ip4:192.0.2.1"]]}
        )
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            first = spflatten.flatten_spf([], [], ["example.com"])
            second = spflatten.flatten_spf([], [], ["example.com"])
        self.assertEqual(first, second)
        self.assertEqual(queried, ["example.com", "example.com"])

    def testFlattenMissingInclude(self):
        """A failing include fails the whole flattening"""
        _, get_txt_records = fake_txt_records(
            {"nonexistent.invalid": [["some other text"]]}
        )
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            with self.assertRaises(spflatten.SPFRecordNotFound) as context:
                spflatten.flatten_spf(["192.0.2.1"], [], ["nonexistent.invalid"])
        self.assertIn("nonexistent.invalid", str(context.exception))
        self.assertEqual(context.exception.domain, "nonexistent.invalid")

    def testResolveLongIncludeChain(self):
        """Long include chains are resolved without exhausting the stack"""
        depth = 1600
        records = {}
        for n in range(depth):
            spf = f"v=spf1 ip4:10.{n // 256}.{n % 256}.1"
            if n + 1 < depth:
                spf += f" include:d{n + 1}.example"
            records[f"d{n}.example"] = [[spf]]
        queried, get_txt_records = fake_txt_records(records)
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            ips = spflatten.flatten_spf([], [], ["d0.example"])
        self.assertEqual(len(ips), depth)
        self.assertEqual(ips[0], "10.0.0.1")
        self.assertEqual(ips[-1], "10.6.63.1")
        self.assertEqual(len(queried), depth)

    def testResolveLongIncludeChainFailure(self):
        """A failure at the end of a long include chain is an SPFError"""
        depth = 1600
        records = {
            f"d{n}.example": [[f"v=spf1 include:d{n + 1}.example"]]
            for n in range(depth)
        }
        _, get_txt_records = fake_txt_records(records)
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            with self.assertRaises(spflatten.SPFQueryFailed) as context:
                spflatten.flatten_spf([], [], ["d0.example"])
        message = str(context.exception)
        self.assertTrue(message.startswith("failed to resolve include domain d0.example"))
        self.assertIn(f"unable to get the SPF record of d{depth}.example", message)
        self.assertEqual(context.exception.domain, f"d{depth}.example")

    def testFlattenNestedFailure(self):
        """Nested failures keep their kind and name every domain on the path"""
        _, get_txt_records = fake_txt_records(
            {
                "a.example": [["v=spf1 ip4:192.0.2.1 include:b.example"]],
                "b.example": [["v=spf1 include:broken.example"]],
            }
        )
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            with self.assertRaises(spflatten.SPFQueryFailed) as context:
                spflatten.flatten_spf([], [], ["a.example"])
        message = str(context.exception)
        self.assertTrue(message.startswith("failed to resolve include domain a.example"))
        self.assertIn("failed to resolve include b.example", message)
        self.assertIn("broken.example", message)
        self.assertEqual(context.exception.domain, "broken.example")
        self.assertIsInstance(context.exception.__cause__, spflatten.SPFQueryFailed)

    def testParseNameserver(self):
        """Resolver addresses are split into a host and a port"""
        parse_nameserver = spflatten.utils.parse_nameserver
        self.assertEqual(parse_nameserver("127.0.0.1:53"), ("127.0.0.1", 53))
        self.assertEqual(parse_nameserver("9.9.9.9"), ("9.9.9.9", 53))
        self.assertEqual(parse_nameserver("[::1]:5353"), ("::1", 5353))
        self.assertEqual(parse_nameserver("[2001:db8::53]"), ("2001:db8::53", 53))
        self.assertEqual(parse_nameserver("2001:db8::53"), ("2001:db8::53", 53))
        self.assertEqual(parse_nameserver("localhost:53"), ("localhost", 53))
        self.assertEqual(parse_nameserver("dns.example"), ("dns.example", 53))
        for nameserver in ["127.0.0.1:abc", "127.0.0.1:0", "[::1", ":53", ""]:
            self.assertRaises(ValueError, parse_nameserver, nameserver)

    def testResolverHostName(self):
        """Resolvers given by host name are looked up before querying"""
        sent = []
        address = [(socket.AF_INET, socket.SOCK_DGRAM, 17, "", ("127.0.0.1", 5353))]
        with patch("socket.getaddrinfo", return_value=address) as getaddrinfo:
            with patch("dns.query.udp", fake_udp('"v=spf1 ip4:192.0.2.1"', sent=sent)):
                ips = spflatten.flatten_spf(
                    [], [], ["example.com"], nameserver="localhost:5353"
                )
        self.assertEqual(ips, ["192.0.2.1"])
        getaddrinfo.assert_called_once()
        self.assertEqual(getaddrinfo.call_args[0][:2], ("localhost", 5353))
        self.assertEqual(sent[0][1:], ("127.0.0.1", 5353))

    def testBadResolverFailsQuery(self):
        """Malformed or unknown resolvers fail the query of the domain"""
        with patch("dns.query.udp") as udp:
            with self.assertRaises(spflatten.SPFQueryFailed) as context:
                spflatten.flatten_spf(
                    [], [], ["example.com"], nameserver="127.0.0.1:abc"
                )
            self.assertEqual(context.exception.domain, "example.com")
            self.assertIn("example.com", str(context.exception))

            with patch("socket.getaddrinfo", side_effect=socket.gaierror("unknown")):
                self.assertRaises(
                    spflatten.SPFQueryFailed,
                    spflatten.flatten_spf,
                    [],
                    [],
                    ["example.com"],
                    nameserver="dns.invalid:53",
                )
        udp.assert_not_called()

    def testDefaultResolverFromEnvironment(self):
        """The DNS_RESOLVER environment variable overrides the default"""
        try:
            with patch.dict(os.environ, {"DNS_RESOLVER": "192.0.2.53:5353"}):
                importlib.reload(spflatten._constants)
                self.assertEqual(spflatten._constants.DNS_RESOLVER, "192.0.2.53:5353")
            with patch.dict(os.environ, {"DNS_RESOLVER": ""}):
                importlib.reload(spflatten._constants)
                self.assertEqual(spflatten._constants.DNS_RESOLVER, "127.0.0.1:53")
        finally:
            importlib.reload(spflatten._constants)

    def testTXTQuery(self):
        """TXT queries are recursive, use EDNS0, and keep strings separate"""
        sent = []
        udp = fake_udp(
            '"v=spf1 ip4:192.0.2.1" " -all"',
            '"google-site-verification=abc"',
            sent=sent,
        )
        with patch("dns.query.udp", udp):
            records = spflatten.utils.get_txt_records(
                "Example.COM", nameserver="192.0.2.53:5353"
            )
        self.assertEqual(len(records), 2)
        self.assertIn(["v=spf1 ip4:192.0.2.1", " -all"], records)
        self.assertIn(["google-site-verification=abc"], records)

        query, where, port = sent[0]
        self.assertEqual((where, port), ("192.0.2.53", 5353))
        self.assertEqual(query.question[0].name, dns.name.from_text("example.com"))
        self.assertEqual(query.question[0].rdtype, dns.rdatatype.TXT)
        self.assertTrue(query.flags & dns.flags.RD)
        self.assertEqual(query.edns, 0)
        self.assertEqual(query.payload, 4096)
        self.assertFalse(query.ednsflags & dns.flags.DO)

    def testUndecodableTXTString(self):
        """Bytes that are not UTF-8 do not hide an SPF record"""
        udp = fake_udp('"v=spf1 ip4:192.0.2.1 \\255 -all"')
        with patch("dns.query.udp", udp):
            records = spflatten.utils.get_txt_records("example.com")
            record = spflatten.query_spf_record("example.com")
        self.assertEqual(records, [["v=spf1 ip4:192.0.2.1 \ufffd -all"]])
        self.assertEqual(record, spflatten.SPFRecord(("192.0.2.1",), (), ()))

    def testTXTQueryErrorCodes(self):
        """Unsuccessful response codes raise DNSException"""
        with patch("dns.query.udp", fake_udp(rcode=dns.rcode.NXDOMAIN)):
            self.assertRaises(
                spflatten.DNSExceptionNXDOMAIN,
                spflatten.utils.get_txt_records,
                "nonexistent.invalid",
            )
        with patch("dns.query.udp", fake_udp(rcode=dns.rcode.SERVFAIL)):
            with self.assertRaises(spflatten.DNSException) as context:
                spflatten.utils.get_txt_records("example.com")
        self.assertIn("SERVFAIL", str(context.exception))

    def testTXTQueryTimeout(self):
        """Transport failures raise DNSException"""
        with patch("dns.query.udp", side_effect=dns.exception.Timeout):
            self.assertRaises(
                spflatten.DNSException,
                spflatten.utils.get_txt_records,
                "example.com",
            )
        with patch("dns.query.udp", side_effect=ConnectionRefusedError):
            self.assertRaises(
                spflatten.DNSException,
                spflatten.utils.get_txt_records,
                "example.com",
            )

    def testTruncatedAnswerRetriedOverTCP(self):
        """Truncated UDP answers are queried again over TCP"""
        sent_udp = []
        sent_tcp = []
        udp = fake_udp(truncated=True, sent=sent_udp)
        tcp = fake_udp('"v=spf1 ip4:192.0.2.1 -all"', sent=sent_tcp)
        with patch("dns.query.udp", udp), patch("dns.query.tcp", tcp):
            records = spflatten.utils.get_txt_records("example.com")
        self.assertEqual(records, [["v=spf1 ip4:192.0.2.1 -all"]])
        self.assertEqual(len(sent_udp), 1)
        self.assertEqual(len(sent_tcp), 1)
        self.assertIs(sent_tcp[0][0], sent_udp[0][0])

    def testQuerySPFRecordOverDNS(self):
        """SPF records are fetched and parsed from DNS answers"""
        udp = fake_udp(
            '"v=spf1 ip4:192.0.2.1 ip6:2001:DB8::1 include:_SPF.example.net -all"'
        )
        with patch("dns.query.udp", udp):
            record = spflatten.query_spf_record("example.com")
        self.assertEqual(
            record,
            spflatten.SPFRecord(("192.0.2.1",), ("2001:db8::1",), ("_spf.example.net",)),
        )

    def testFormatIPList(self):
        """IP lists are formatted one per line, optionally tagged"""
        ips = ["192.0.2.1", "2001:db8::/32"]
        self.assertEqual(spflatten.format_ip_list(ips), "192.0.2.1\n2001:db8::/32")
        self.assertEqual(
            spflatten.format_ip_list(ips, tags=True),
            "ip4:192.0.2.1\nip6:2001:db8::/32",
        )
        self.assertEqual(spflatten.format_ip_list([]), "")

    def testOutputToFile(self):
        """Output is written to a file"""
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "ips.txt")
            spflatten.output_to_file(path, "192.0.2.1\n")
            with open(path) as output_file:
                self.assertEqual(output_file.read(), "192.0.2.1\n")

    def testCLIRequiresInput(self):
        """The CLI exits with an error when nothing is given to flatten"""
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as context:
                spflatten._cli._main([])
        self.assertEqual(context.exception.code, 1)
        self.assertIn("At least one --ip4, --ip6, or --include", stderr.getvalue())

    def testCLI(self):
        """The CLI prints one tagged address per line"""
        _, get_txt_records = fake_txt_records(
            {"example.com": [["v=spf1 ip4:192.0.2.1 ip6:2001:db8::1 -all"]]}
        )
        stdout = io.StringIO()
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            with redirect_stdout(stdout):
                spflatten._cli._main(
                    ["--ip4", "198.51.100.1", "--include", "example.com", "--tags"]
                )
        self.assertEqual(
            stdout.getvalue(),
            "ip4:198.51.100.1\nip4:192.0.2.1\nip6:2001:db8::1\n",
        )

    def testCLIFailure(self):
        """The CLI exits with an error when flattening fails"""
        _, get_txt_records = fake_txt_records({})
        stderr = io.StringIO()
        with patch("spflatten.spf.get_txt_records", get_txt_records):
            with redirect_stderr(stderr):
                with self.assertRaises(SystemExit) as context:
                    spflatten._cli._main(["--include", "nonexistent.invalid"])
        self.assertEqual(context.exception.code, 1)
        self.assertTrue(stderr.getvalue().startswith("Error: "))
        self.assertIn("nonexistent.invalid", stderr.getvalue())

    def testCLIInvalidResolver(self):
        """The CLI rejects malformed resolver addresses"""
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as context:
                spflatten._cli._main(
                    ["--ip4", "192.0.2.1", "--resolver", "127.0.0.1:abc"]
                )
        self.assertEqual(context.exception.code, 1)


if __name__ == "__main__":
    unittest.main(verbosity=2)

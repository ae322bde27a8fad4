# tests/test_dns/test_dns_records.py

import asyncio
import socket
from unittest.mock import AsyncMock, patch

import dns.exception
import dns.name
import dns.resolver
import pytest

from netkit.core.dns.models import DnsOutcome
from netkit.core.dns.records import (
    MAX_TTL,
    RecordResolvers,
    clip_value,
    resolve_host_addresses,
)
from netkit.core.errors import ErrorKind, OperationCancelledError


@pytest.fixture
def resolvers(mock_query_client):
    return RecordResolvers(mock_query_client)


def new_outcome(record_type, domain="example.com"):
    return DnsOutcome(domain=domain, record_type=record_type)


def test_clip_value():
    assert clip_value("short", 10) == "short"
    clipped = clip_value("x" * 600, 500)
    assert len(clipped) == 500
    assert clipped.endswith("...")
    assert clipped[:497] == "x" * 497


class TestMX:
    @pytest.mark.asyncio
    async def test_records(self, resolvers, mock_query_client, make_answers, make_mx):
        mock_query_client.query.return_value = make_answers(
            [make_mx("mail1.example.com.", 10), make_mx("mail2.example.com.", 20)],
            ttl=3600,
        )

        outcome = await resolvers.lookup_mx("example.com", new_outcome("MX"))

        assert [(r.value, r.priority, r.ttl) for r in outcome.records] == [
            ("mail1.example.com", 10, 3600),
            ("mail2.example.com", 20, 3600),
        ]
        assert outcome.error == ""
        mock_query_client.query.assert_awaited_once_with("example.com", "MX")

    @pytest.mark.asyncio
    async def test_truncates_at_fifty(
        self, resolvers, mock_query_client, make_answers, make_mx
    ):
        mock_query_client.query.return_value = make_answers(
            [make_mx(f"mx{i}.example.com.", i) for i in range(75)]
        )

        outcome = await resolvers.lookup_mx("example.com", new_outcome("MX"))

        assert len(outcome.records) == 50
        assert outcome.records[-1].value == "mx49.example.com"
        assert outcome.truncated is True
        assert outcome.warnings == ["Too many MX records (showing first 50)"]
        assert outcome.error == ""
        assert outcome.error_kind is ErrorKind.TOO_MANY_RECORDS

    @pytest.mark.asyncio
    async def test_exactly_fifty_is_not_truncated(
        self, resolvers, mock_query_client, make_answers, make_mx
    ):
        mock_query_client.query.return_value = make_answers(
            [make_mx(f"mx{i}.example.com.") for i in range(50)]
        )

        outcome = await resolvers.lookup_mx("example.com", new_outcome("MX"))

        assert len(outcome.records) == 50
        assert outcome.truncated is False

    @pytest.mark.asyncio
    async def test_long_exchange_is_clipped(
        self, resolvers, mock_query_client, make_answers, make_mx
    ):
        mock_query_client.query.return_value = make_answers([make_mx("m" * 600)])

        outcome = await resolvers.lookup_mx("example.com", new_outcome("MX"))

        value = outcome.records[0].value
        assert len(value) == 500
        assert value.endswith("...")

    @pytest.mark.asyncio
    async def test_ttl_and_preference_are_clamped(
        self, resolvers, mock_query_client, make_answers, make_mx
    ):
        mock_query_client.query.return_value = make_answers(
            [make_mx("a.example.", 70000), make_mx("b.example.", -3)], ttl=2**40
        )

        outcome = await resolvers.lookup_mx("example.com", new_outcome("MX"))

        assert [r.priority for r in outcome.records] == [65535, 0]
        assert all(r.ttl == MAX_TTL for r in outcome.records)

    @pytest.mark.asyncio
    async def test_empty_answer_is_not_found(
        self, resolvers, mock_query_client, make_answers
    ):
        mock_query_client.query.return_value = make_answers([])

        outcome = await resolvers.lookup_mx("example.com", new_outcome("MX"))

        assert outcome.records == []
        assert outcome.error_kind is ErrorKind.NOT_FOUND
        assert outcome.error == "No MX records found"

    @pytest.mark.asyncio
    async def test_no_answer(self, resolvers, mock_query_client):
        mock_query_client.query.side_effect = dns.resolver.NoAnswer()

        outcome = await resolvers.lookup_mx("example.com", new_outcome("MX"))

        assert outcome.error_kind is ErrorKind.NOT_FOUND
        assert outcome.error == "No MX records found"

    @pytest.mark.asyncio
    async def test_nxdomain(self, resolvers, mock_query_client):
        mock_query_client.query.side_effect = dns.resolver.NXDOMAIN()

        outcome = await resolvers.lookup_mx("nonexistent.example", new_outcome("MX"))

        assert outcome.error_kind is ErrorKind.NOT_FOUND
        assert "does not exist" in outcome.error

    @pytest.mark.asyncio
    async def test_timeout_is_transport(self, resolvers, mock_query_client):
        mock_query_client.query.side_effect = dns.exception.Timeout()

        outcome = await resolvers.lookup_mx("example.com", new_outcome("MX"))

        assert outcome.error_kind is ErrorKind.TRANSPORT
        assert outcome.error == "MX lookup failed: query timed out"

    @pytest.mark.asyncio
    async def test_no_nameservers_is_transport(self, resolvers, mock_query_client):
        mock_query_client.query.side_effect = dns.resolver.NoNameservers()

        outcome = await resolvers.lookup_mx("example.com", new_outcome("MX"))

        assert outcome.error_kind is ErrorKind.TRANSPORT
        assert outcome.error.startswith("MX lookup failed: ")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc", [dns.name.EmptyLabel(), dns.name.LabelTooLong(), dns.name.NameTooLong()]
    )
    async def test_malformed_name_is_invalid_input(self, resolvers, mock_query_client, exc):
        mock_query_client.query.side_effect = exc

        outcome = await resolvers.lookup_mx("a..example.com", new_outcome("MX"))

        assert outcome.error_kind is ErrorKind.INVALID_INPUT
        assert outcome.error == "Invalid domain name: a..example.com"

    @pytest.mark.asyncio
    async def test_cancelled(self, resolvers, mock_query_client):
        mock_query_client.query.side_effect = OperationCancelledError("stop")

        outcome = await resolvers.lookup_mx("example.com", new_outcome("MX"))

        assert outcome.error_kind is ErrorKind.CANCELLED
        assert outcome.error == "MX lookup was cancelled"


class TestTXT:
    @pytest.mark.asyncio
    async def test_strings_are_joined(
        self, resolvers, mock_query_client, make_answers, make_txt
    ):
        mock_query_client.query.return_value = make_answers(
            [make_txt("v=spf1 include:_spf.example.com", "-all")], ttl=60
        )

        outcome = await resolvers.lookup_txt("example.com", new_outcome("TXT"))

        assert outcome.records[0].value == "v=spf1 include:_spf.example.com -all"
        assert outcome.records[0].ttl == 60
        assert outcome.records[0].priority == 0

    @pytest.mark.asyncio
    async def test_truncates_at_twenty_five(
        self, resolvers, mock_query_client, make_answers, make_txt
    ):
        mock_query_client.query.return_value = make_answers(
            [make_txt(f"record-{i}") for i in range(40)]
        )

        outcome = await resolvers.lookup_txt("example.com", new_outcome("TXT"))

        assert len(outcome.records) == 25
        assert outcome.truncated is True
        assert outcome.warnings == ["Too many TXT records (showing first 25)"]

    @pytest.mark.asyncio
    async def test_long_value_is_clipped(
        self, resolvers, mock_query_client, make_answers, make_txt
    ):
        mock_query_client.query.return_value = make_answers(
            [make_txt("a" * 1500, "b" * 1500)]
        )

        outcome = await resolvers.lookup_txt("example.com", new_outcome("TXT"))

        value = outcome.records[0].value
        assert len(value) == 2000
        assert value.endswith("...")

    @pytest.mark.asyncio
    async def test_no_records(self, resolvers, mock_query_client, make_answers):
        mock_query_client.query.return_value = make_answers([])

        outcome = await resolvers.lookup_txt("example.com", new_outcome("TXT"))

        assert outcome.error == "No TXT records found"


class TestNS:
    @pytest.mark.asyncio
    async def test_records_are_not_capped(
        self, resolvers, mock_query_client, make_answers, make_ns
    ):
        mock_query_client.query.return_value = make_answers(
            [make_ns(f"ns{i}.example.com.") for i in range(60)]
        )

        outcome = await resolvers.lookup_ns("example.com", new_outcome("NS"))

        assert len(outcome.records) == 60
        assert outcome.records[0].value == "ns0.example.com"
        assert outcome.truncated is False

    @pytest.mark.asyncio
    async def test_no_records(self, resolvers, mock_query_client, make_answers):
        mock_query_client.query.return_value = make_answers([])

        outcome = await resolvers.lookup_ns("example.com", new_outcome("NS"))

        assert outcome.error_kind is ErrorKind.NOT_FOUND
        assert outcome.error == "No NS records found"


class TestPTR:
    @pytest.mark.asyncio
    async def test_requires_ip_address(self, resolvers):
        with patch(
            "netkit.core.dns.records.resolve_reverse_name", new_callable=AsyncMock
        ) as mock_reverse:
            outcome = await resolvers.lookup_ptr("example.com", new_outcome("PTR"))

        assert outcome.error_kind is ErrorKind.INVALID_INPUT
        assert outcome.error == "PTR lookup requires an IP address"
        mock_reverse.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reverse_lookup(self, resolvers):
        with patch(
            "netkit.core.dns.records.resolve_reverse_name",
            AsyncMock(return_value="dns.google"),
        ):
            outcome = await resolvers.lookup_ptr("8.8.8.8", new_outcome("PTR", "8.8.8.8"))

        assert [(r.type, r.name, r.value) for r in outcome.records] == [
            ("PTR", "8.8.8.8", "dns.google")
        ]

    @pytest.mark.asyncio
    async def test_no_reverse_entry(self, resolvers):
        with patch(
            "netkit.core.dns.records.resolve_reverse_name",
            AsyncMock(side_effect=socket.herror(1, "Unknown host")),
        ):
            outcome = await resolvers.lookup_ptr(
                "192.0.2.10", new_outcome("PTR", "192.0.2.10")
            )

        assert outcome.error_kind is ErrorKind.NOT_FOUND
        assert outcome.records == []


class TestHostResolution:
    @pytest.mark.asyncio
    async def test_cname_differs_from_query(self, resolvers):
        with patch(
            "netkit.core.dns.records.resolve_canonical_name",
            AsyncMock(return_value="edge.cdn.example.net"),
        ):
            outcome = await resolvers.lookup_cname(
                "www.example.com", new_outcome("CNAME", "www.example.com")
            )

        assert outcome.records[0].value == "edge.cdn.example.net"

    @pytest.mark.asyncio
    async def test_cname_same_as_query_is_skipped(self, resolvers):
        with patch(
            "netkit.core.dns.records.resolve_canonical_name",
            AsyncMock(return_value="Example.com."),
        ):
            outcome = await resolvers.lookup_cname("example.com", new_outcome("CNAME"))

        assert outcome.records == []
        assert outcome.error == ""

    @pytest.mark.asyncio
    async def test_unknown_host_is_not_found(self, resolvers):
        with patch(
            "netkit.core.dns.records.resolve_host_addresses",
            AsyncMock(side_effect=socket.gaierror(socket.EAI_NONAME, "not known")),
        ):
            outcome = await resolvers.lookup_a("nope.invalid", new_outcome("A"))

        assert outcome.error_kind is ErrorKind.NOT_FOUND
        assert outcome.error == "Host not found: nope.invalid"

    @pytest.mark.asyncio
    async def test_resolver_failure_is_transport(self, resolvers):
        with patch(
            "netkit.core.dns.records.resolve_host_addresses",
            AsyncMock(side_effect=socket.gaierror(socket.EAI_AGAIN, "try again")),
        ):
            outcome = await resolvers.lookup_a("example.com", new_outcome("A"))

        assert outcome.error_kind is ErrorKind.TRANSPORT
        assert outcome.error.startswith("A lookup failed: ")

    @pytest.mark.asyncio
    async def test_unencodable_name_is_invalid_input(self, resolvers):
        domain = "a" * 64 + ".com"
        error = UnicodeError("encoding with 'idna' codec failed")

        with patch(
            "netkit.core.dns.records.resolve_host_addresses", AsyncMock(side_effect=error)
        ), patch(
            "netkit.core.dns.records.resolve_canonical_name", AsyncMock(side_effect=error)
        ):
            a_outcome = await resolvers.lookup_a(domain, new_outcome("A", domain))
            cname_outcome = await resolvers.lookup_cname(domain, new_outcome("CNAME", domain))

        for outcome in (a_outcome, cname_outcome):
            assert outcome.error_kind is ErrorKind.INVALID_INPUT
            assert outcome.error == f"Invalid domain name: {domain}"
            assert outcome.records == []

    @pytest.mark.asyncio
    async def test_resolve_host_addresses_deduplicates(self):
        infos = [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.1", 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.1", 0)),
            (socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("2001:db8::1", 0, 0, 0)),
        ]
        loop = asyncio.get_running_loop()

        with patch.object(loop, "getaddrinfo", AsyncMock(return_value=infos)):
            addresses = await resolve_host_addresses("example.com")

        assert addresses == [
            (socket.AF_INET, "192.0.2.1"),
            (socket.AF_INET6, "2001:db8::1"),
        ]

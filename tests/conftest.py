from __future__ import annotations

import asyncio
import collections
import math
from collections.abc import AsyncGenerator

import dns.exception
import dns.message
import dns.rdatatype
import dns.rrset
import pytest

from zonesweep.modules.dns_sweep import TransferEnvelope
from zonesweep.modules.target import QueryTarget


def make_rrset(name: str, rtype: str, *rdatas: str, ttl: int = 300) -> dns.rrset.RRset:
    return dns.rrset.from_text(name, ttl, "IN", rtype, *rdatas)


class FakeDnsClient:
    '''
    Scripted stand-in for the dnspython client.

    `answers` maps a record type to the record sets returned for it,
    `failures` maps a record type to how many exchanges fail with a
    timeout before one succeeds (math.inf for never), `transfer` is the
    envelope stream served for a zone transfer and `hang` makes every
    exchange block until cancelled.
    '''

    def __init__(
        self,
        *,
        answers: dict[dns.rdatatype.RdataType, list[dns.rrset.RRset]] | None = None,
        failures: dict[dns.rdatatype.RdataType, float] | None = None,
        transfer: list[TransferEnvelope] | None = None,
        hang: bool = False,
    ) -> None:
        self.answers = answers or {}
        self.failures = dict(failures or {})
        self.transfer = transfer if transfer is not None else [
            TransferEnvelope(error=dns.exception.FormError("REFUSED"))
        ]
        self.hang = hang
        self.calls: collections.Counter[dns.rdatatype.RdataType] = collections.Counter()
        self.transfers = 0
        self.nameservers: list[str] = []

    async def resolve_nameserver(self, host: str) -> str:
        return host

    async def exchange(
        self,
        query: dns.message.Message,
        nameserver: str,
    ) -> dns.message.Message:
        rtype = dns.rdatatype.RdataType(query.question[0].rdtype)
        self.calls[rtype] += 1
        self.nameservers.append(nameserver)

        if self.hang:
            await asyncio.Event().wait()

        if self.failures.get(rtype, 0) > 0:
            self.failures[rtype] -= 1
            raise dns.exception.Timeout()

        response = dns.message.make_response(query)
        response.answer.extend(self.answers.get(rtype, []))
        return response

    async def zone_transfer(
        self,
        domain: str,
        nameserver: str,
    ) -> AsyncGenerator[TransferEnvelope, None]:
        self.transfers += 1
        for envelope in self.transfer:
            yield envelope


@pytest.fixture
def fake_client() -> type[FakeDnsClient]:
    return FakeDnsClient


@pytest.fixture
def zonetransfer_target() -> QueryTarget:
    return QueryTarget(domain="zonetransfer.me.", nameserver="nsztm2.digi.ninja:53")


@pytest.fixture
def example_target() -> QueryTarget:
    return QueryTarget(domain="example.com.", nameserver="8.8.8.8:53")


NEVER = math.inf

from __future__ import annotations

import asyncio
import contextlib
import dataclasses as dc
import warnings
from typing import Final, Self

import dns.message
import dns.rdatatype
import dns.rrset
from loguru import logger

from zonesweep.core.retries import AsyncRetries, NoAttemptsLeftError
from zonesweep.modules.dns_sweep.client import (
    TRANSPORT_ERRORS,
    AsyncDnsClient,
    DnsClient,
    DnsConfig,
)
from zonesweep.modules.models import SessionResult
from zonesweep.modules.target import QueryTarget

# querying these one at a time is meaningless (ANY) or is
# the zone transfer itself (AXFR)
PSEUDO_TYPES: Final[frozenset[dns.rdatatype.RdataType]] = frozenset({
    dns.rdatatype.ANY,
    dns.rdatatype.AXFR,
})


def sweep_rtypes() -> tuple[dns.rdatatype.RdataType, ...]:
    '''
    Every record type dnspython knows of, minus the pseudo-types.
    '''
    return tuple(
        rtype for rtype in dns.rdatatype.RdataType
        if rtype not in PSEUDO_TYPES
    )


class ZoneTransferError(Exception):
    '''
    The zone transfer was refused, failed in transit or was malformed.
    '''


def create_retries(config: DnsConfig | None = None) -> AsyncRetries:
    config = config or DnsConfig()
    return AsyncRetries(
        retry_on=TRANSPORT_ERRORS,
        attempts=config.max_attempts,
        deadline=config.retry_deadline,
    )


@dc.dataclass(slots=True)
class QueryOutcome:
    rtype: dns.rdatatype.RdataType
    records: list[dns.rrset.RRset] = dc.field(default_factory=list)
    attempts: int = 0
    error: BaseException | None = None

    @property
    def rtype_name(self) -> str:
        return dns.rdatatype.to_text(self.rtype)


@dc.dataclass(slots=True)
class SweepResult:
    domain: str
    records: list[dns.rrset.RRset] = dc.field(default_factory=list)
    rtypes_queried: list[str] = dc.field(default_factory=list)
    warnings: list[str] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class RecordQuery:
    '''
    Queries one record type of the target, retrying the same query
    whenever the exchange fails.
    '''
    client: DnsClient
    retries: AsyncRetries

    @classmethod
    def create(
        cls,
        *,
        client: DnsClient,
        config: DnsConfig | None = None,
    ) -> Self:
        return cls(client=client, retries=create_retries(config))

    async def _exchange(
        self,
        target: QueryTarget,
        rtype: dns.rdatatype.RdataType,
    ) -> list[dns.rrset.RRset]:
        request = dns.message.make_query(target.domain, rtype)
        response = await self.client.exchange(request, target.nameserver)
        return list(response.answer)

    async def query(
        self,
        target: QueryTarget,
        rtype: dns.rdatatype.RdataType,
    ) -> list[dns.rrset.RRset]:
        '''
        Returns the answer section for the record type, possibly empty.

        Parameters
        ----------
        target : QueryTarget
        rtype : dns.rdatatype.RdataType

        Returns
        -------
        list[dns.rrset.RRset]

        Raises
        ------
        NoAttemptsLeftError
            _Only when the retries are bounded and have run out_
        '''
        return await self.retries.call_with_retries(self._exchange, target, rtype)

    async def outcome(
        self,
        target: QueryTarget,
        rtype: dns.rdatatype.RdataType,
    ) -> QueryOutcome:
        '''
        Like `query`, but never raises for an exhausted retry budget,
        the failure is recorded on the returned outcome instead.
        '''
        attempts = 0

        async def _attempt() -> list[dns.rrset.RRset]:
            nonlocal attempts
            attempts += 1
            return await self._exchange(target, rtype)

        try:
            records = await self.retries.call_with_retries(_attempt)
        except NoAttemptsLeftError as exc:
            logger.warning(
                f"Giving up on {dns.rdatatype.to_text(rtype)} for "
                f"{target.domain}: {exc.__cause__!r}"
            )
            return QueryOutcome(rtype=rtype, attempts=attempts, error=exc)

        return QueryOutcome(rtype=rtype, records=records, attempts=attempts)


@dc.dataclass(slots=True)
class SweepOrchestrator:
    '''
    Queries every record type of the target concurrently and merges
    the answers once all of them have finished.
    '''
    record_query: RecordQuery
    rtypes: tuple[dns.rdatatype.RdataType, ...] = dc.field(default_factory=sweep_rtypes)

    def __post_init__(self) -> None:
        excluded = [r for r in self.rtypes if r in PSEUDO_TYPES]
        if excluded:
            warnings.warn(
                "Pseudo record types are never swept, ignoring: "
                f"{', '.join(dns.rdatatype.to_text(r) for r in excluded)}",
                UserWarning,
            )
            self.rtypes = tuple(r for r in self.rtypes if r not in PSEUDO_TYPES)

    async def sweep_all(self, target: QueryTarget) -> SweepResult:
        logger.debug(f"Sweeping {len(self.rtypes)} record types for {target.domain}")
        outcomes: list[QueryOutcome] = await asyncio.gather(
            *(self.record_query.outcome(target, rtype) for rtype in self.rtypes)
        )

        result = SweepResult(domain=target.domain)
        for outcome in outcomes:
            result.rtypes_queried.append(outcome.rtype_name)
            if outcome.error is not None:
                result.warnings.append(
                    f"No answer for {outcome.rtype_name} after "
                    f"{outcome.attempts} attempts: {outcome.error.__cause__}"
                )
                continue
            result.records.extend(outcome.records)
        return result


@dc.dataclass(slots=True)
class ZoneTransferAttempt:
    '''
    A single AXFR of the target's domain. Either every record of the
    stream is returned or a ZoneTransferError is raised, never part of it.
    '''
    client: DnsClient

    async def attempt(self, target: QueryTarget) -> list[dns.rrset.RRset]:
        records: list[dns.rrset.RRset] = []
        stream = self.client.zone_transfer(target.domain, target.nameserver)
        async with contextlib.aclosing(stream):
            async for envelope in stream:
                if envelope.error is not None:
                    raise ZoneTransferError(
                        f"Zone transfer of {target.domain} from "
                        f"{target.nameserver} failed: {envelope.error!r}"
                    ) from envelope.error
                records.extend(envelope.records)
        return records


@dc.dataclass(slots=True)
class SessionController:
    '''
    Enumerates the records of a target: a zone transfer is tried first
    and any failure of it falls back to sweeping every record type.
    '''
    client: DnsClient
    zone_transfer: ZoneTransferAttempt
    sweep: SweepOrchestrator
    deadline: float | None = None

    @classmethod
    def create(
        cls,
        *,
        config: DnsConfig | None = None,
        client: DnsClient | None = None,
    ) -> Self:
        config = config or DnsConfig()
        if client is None:
            client = AsyncDnsClient(config=config)

        return cls(
            client=client,
            zone_transfer=ZoneTransferAttempt(client=client),
            sweep=SweepOrchestrator(
                record_query=RecordQuery.create(client=client, config=config),
            ),
            deadline=config.deadline,
        )

    async def _run(self, target: QueryTarget) -> SessionResult:
        try:
            await self.client.resolve_nameserver(target.host)
        except TRANSPORT_ERRORS as exc:
            # looked up again by every exchange
            logger.debug(f"Nameserver lookup for {target.host} failed: {exc!r}")

        try:
            records = await self.zone_transfer.attempt(target)
        except ZoneTransferError as exc:
            logger.debug(f"{exc}, falling back to a record type sweep")
        else:
            logger.debug(f"Zone transfer returned {len(records)} record sets")
            return SessionResult(target=target, method="axfr", records=records)

        swept = await self.sweep.sweep_all(target)
        return SessionResult(
            target=target,
            method="sweep",
            records=swept.records,
            rtypes_queried=swept.rtypes_queried,
            warnings=swept.warnings,
        )

    async def run(
        self,
        target: QueryTarget,
        *,
        deadline: float | None = None,
    ) -> SessionResult:
        '''
        Runs one enumeration of the target.

        Parameters
        ----------
        target : QueryTarget
        deadline : float | None
            _Seconds allowed for the run, defaults to the configured deadline_

        Returns
        -------
        SessionResult

        Raises
        ------
        NameserverError
            _The nameserver host could not be resolved_
        TimeoutError
            _The deadline passed before the run finished_
        '''
        deadline = deadline if deadline is not None else self.deadline
        async with asyncio.timeout(deadline):
            return await self._run(target)


async def enumerate_records(
    *,
    domain: str,
    nameserver: str,
    config: DnsConfig | None = None,
) -> SessionResult:
    '''
    Normalizes the input and enumerates every record of the domain.

    Parameters
    ----------
    domain : str
        _The domain, with or without its trailing dot_
    nameserver : str
        _host or host:port of the nameserver to ask_
    config : DnsConfig | None

    Returns
    -------
    SessionResult
    '''
    target = QueryTarget.create(domain=domain, nameserver=nameserver)
    return await SessionController.create(config=config).run(target)

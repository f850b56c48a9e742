from __future__ import annotations

import asyncio
import contextlib
import dataclasses as dc
from collections.abc import AsyncGenerator
from typing import Final, Protocol

import dns.asyncquery
import dns.asyncresolver
import dns.exception
import dns.inet
import dns.message
import dns.query
import dns.rdatatype
import dns.resolver
import dns.rrset
from loguru import logger

from zonesweep.modules.target import split_host_port

# failures of a single exchange or transfer: timeouts, refused
# connections, truncated streams and unparseable or rejected messages
TRANSPORT_ERRORS: Final[tuple[type[BaseException], ...]] = (
    dns.exception.DNSException,
    OSError,
    EOFError,
)


class NameserverError(ValueError):
    '''
    The nameserver host could not be resolved to an address.
    '''


@dc.dataclass(slots=True, frozen=True)
class DnsConfig:
    '''
    Options for the DNS client and the query orchestration.

    Parameters
    ----------
    timeout : float
        _Seconds allowed for each exchange and each zone transfer read_
    max_attempts : int | None
        _Attempts per record type before it is given up, None retries forever_
    retry_deadline : float | None
        _Seconds per record type before it is given up, None retries forever_
    deadline : float | None
        _Seconds allowed for a whole run, None for no limit_
    source_port : int
        _Local port to send from, 0 lets the OS pick_
    '''
    timeout: float = 5.0
    max_attempts: int | None = None
    retry_deadline: float | None = None
    deadline: float | None = None
    source_port: int = 0


@dc.dataclass(slots=True)
class TransferEnvelope:
    '''
    One message of a zone transfer stream: the records it carried or
    the error that ended the stream.
    '''
    records: list[dns.rrset.RRset] = dc.field(default_factory=list)
    error: BaseException | None = None


class DnsClient(Protocol):
    async def resolve_nameserver(self, host: str) -> str: ...

    async def exchange(
        self,
        query: dns.message.Message,
        nameserver: str,
    ) -> dns.message.Message: ...

    def zone_transfer(
        self,
        domain: str,
        nameserver: str,
    ) -> AsyncGenerator[TransferEnvelope, None]: ...


class AsyncDnsClient:
    '''
    dnspython backed client. Standard queries go over UDP and fall back
    to TCP when the answer is truncated, zone transfers go over TCP.
    '''

    def __init__(
        self,
        *,
        config: DnsConfig | None = None,
        resolver: dns.asyncresolver.Resolver | None = None,
    ) -> None:
        self.config = config or DnsConfig()
        self._resolver = resolver
        self._lock = asyncio.Lock()
        self._addresses: dict[str, str] = {}

    @property
    def resolver(self) -> dns.asyncresolver.Resolver:
        if self._resolver is None:
            self._resolver = dns.asyncresolver.Resolver()
        return self._resolver

    async def _lookup_address(self, host: str) -> str:
        '''
        Only a name that does not exist, or has no address, is a
        NameserverError. Timeouts and unreachable resolvers propagate
        as transport errors so callers can retry them.
        '''
        last_exc: BaseException | None = None
        for rtype in (dns.rdatatype.A, dns.rdatatype.AAAA):
            try:
                answer = await self.resolver.resolve(
                    host,
                    rtype,
                    lifetime=self.config.timeout,
                )
            except dns.resolver.NXDOMAIN as exc:
                raise NameserverError(
                    f"Could not resolve nameserver {host!r}: {exc}"
                ) from exc
            except dns.resolver.NoAnswer as exc:
                last_exc = exc
                continue
            return answer[0].to_text()

        raise NameserverError(
            f"Could not resolve nameserver {host!r}: {last_exc}"
        ) from last_exc

    async def resolve_nameserver(self, host: str) -> str:
        '''
        Resolves a nameserver host to an address, addresses are returned
        as is and lookups are done once per client.

        Parameters
        ----------
        host : str

        Returns
        -------
        str

        Raises
        ------
        NameserverError
        '''
        if dns.inet.is_address(host):
            return host

        async with self._lock:
            if host not in self._addresses:
                address = await self._lookup_address(host)
                logger.debug(f"Resolved nameserver {host} to {address}")
                self._addresses[host] = address
            return self._addresses[host]

    async def exchange(
        self,
        query: dns.message.Message,
        nameserver: str,
    ) -> dns.message.Message:
        '''
        Sends one query to the nameserver and returns its response.

        Raises
        ------
        dns.exception.DNSException | OSError | EOFError
            _The exchange timed out, was refused or the response was malformed_
        '''
        host, port = split_host_port(nameserver)
        where = await self.resolve_nameserver(host)
        response, _ = await dns.asyncquery.udp_with_fallback(
            query,
            where,
            timeout=self.config.timeout,
            port=port,
            source_port=self.config.source_port,
        )
        return response

    async def zone_transfer(
        self,
        domain: str,
        nameserver: str,
    ) -> AsyncGenerator[TransferEnvelope, None]:
        '''
        Requests an AXFR of the domain and yields one envelope per
        message received. A failure is yielded as a final envelope
        carrying the error, it is never raised.
        '''
        host, port = split_host_port(nameserver)
        try:
            where = await self.resolve_nameserver(host)
        except (NameserverError, *TRANSPORT_ERRORS) as exc:
            yield TransferEnvelope(error=exc)
            return

        # dnspython's transfer is a blocking generator, each message is
        # read in a worker thread
        stream = dns.query.xfr(
            where,
            domain,
            port=port,
            timeout=self.config.timeout,
            relativize=False,
            source_port=self.config.source_port,
        )
        try:
            while True:
                try:
                    message = await asyncio.to_thread(next, stream, None)
                except Exception as exc:
                    yield TransferEnvelope(error=exc)
                    return
                if message is None:
                    return
                yield TransferEnvelope(records=list(message.answer))
        finally:
            # a cancelled read leaves the generator running in its thread
            with contextlib.suppress(ValueError):
                stream.close()

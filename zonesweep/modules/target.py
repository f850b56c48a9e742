from __future__ import annotations

import dataclasses as dc
from typing import Final, Self

import dns.exception
import dns.inet
import dns.name

DEFAULT_PORT: Final[int] = 53
DEFAULT_NAMESERVER: Final[str] = f"8.8.8.8:{DEFAULT_PORT}"


def to_fqdn(domain: str) -> str:
    '''
    Returns the domain as a fully-qualified name with its trailing dot.

    Parameters
    ----------
    domain : str

    Returns
    -------
    str

    Raises
    ------
    ValueError
        _If the domain is empty or is not a valid DNS name_
    '''
    domain = domain.strip()
    if not domain or domain == ".":
        raise ValueError("A domain name is required")
    try:
        return dns.name.from_text(domain).to_text()
    except dns.exception.DNSException as exc:
        raise ValueError(f"Invalid domain name: {domain!r} ({exc})") from exc


def split_host_port(nameserver: str) -> tuple[str, int]:
    '''
    Splits a nameserver into its host and port, assuming port 53
    when none is given.

    Accepts `host`, `host:port`, `[v6addr]:port`, `[v6addr]` and a bare
    IPv6 address.

    Raises
    ------
    ValueError
        _If the nameserver is empty or the port is not a valid port number_
    '''
    nameserver = nameserver.strip()
    if not nameserver:
        raise ValueError("A nameserver is required")

    if nameserver.startswith("["):
        host, sep, rest = nameserver[1:].partition("]")
        if not sep or not host:
            raise ValueError(f"Invalid nameserver: {nameserver!r}")
        if not rest:
            return host, DEFAULT_PORT
        if not rest.startswith(":"):
            raise ValueError(f"Invalid nameserver: {nameserver!r}")
        return host, _parse_port(rest[1:], nameserver)

    if nameserver.count(":") > 1:
        if dns.inet.is_address(nameserver):
            return nameserver, DEFAULT_PORT
        raise ValueError(
            f"Invalid nameserver: {nameserver!r}, wrap IPv6 addresses in brackets"
        )

    host, sep, port = nameserver.partition(":")
    if not host:
        raise ValueError(f"Invalid nameserver: {nameserver!r}")
    if not sep:
        return host, DEFAULT_PORT
    return host, _parse_port(port, nameserver)


def _parse_port(port: str, nameserver: str) -> int:
    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError(f"Invalid port in nameserver {nameserver!r}: {port!r}")
    return int(port)


def join_host_port(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dc.dataclass(slots=True, frozen=True)
class QueryTarget:
    '''
    The domain being enumerated and the nameserver it is enumerated
    against. Built once from user input and never changed.
    '''
    domain: str
    nameserver: str

    @classmethod
    def create(cls, *, domain: str, nameserver: str = DEFAULT_NAMESERVER) -> Self:
        '''
        Normalizes raw input into a target: the domain gains its
        trailing dot and the nameserver its default port.
        '''
        host, port = split_host_port(nameserver)
        return cls(domain=to_fqdn(domain), nameserver=join_host_port(host, port))

    @property
    def host(self) -> str:
        return split_host_port(self.nameserver)[0]

    @property
    def port(self) -> int:
        return split_host_port(self.nameserver)[1]

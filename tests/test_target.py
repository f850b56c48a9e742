import dataclasses

import pytest

from zonesweep.modules.target import (
    DEFAULT_NAMESERVER,
    QueryTarget,
    join_host_port,
    split_host_port,
    to_fqdn,
)


@pytest.mark.parametrize(
    ("domain", "expected"),
    [
        ("example.com", "example.com."),
        ("example.com.", "example.com."),
        ("  zonetransfer.me ", "zonetransfer.me."),
        ("localhost", "localhost."),
    ],
)
def test_to_fqdn(domain, expected):
    assert to_fqdn(domain) == expected


@pytest.mark.parametrize("domain", ["", "   ", ".", "a..b", "x" * 64 + ".com"])
def test_to_fqdn_rejects_invalid_names(domain):
    with pytest.raises(ValueError):
        to_fqdn(domain)


@pytest.mark.parametrize(
    ("nameserver", "expected"),
    [
        ("8.8.8.8", ("8.8.8.8", 53)),
        ("8.8.8.8:5353", ("8.8.8.8", 5353)),
        ("nsztm2.digi.ninja:53", ("nsztm2.digi.ninja", 53)),
        ("nsztm2.digi.ninja", ("nsztm2.digi.ninja", 53)),
        ("2001:4860:4860::8888", ("2001:4860:4860::8888", 53)),
        ("[2001:4860:4860::8888]:853", ("2001:4860:4860::8888", 853)),
        ("[::1]", ("::1", 53)),
    ],
)
def test_split_host_port(nameserver, expected):
    assert split_host_port(nameserver) == expected


@pytest.mark.parametrize(
    "nameserver",
    ["", ":53", "8.8.8.8:", "8.8.8.8:dns", "8.8.8.8:70000", "[::1", "[::1]53", "a:b:c"],
)
def test_split_host_port_rejects_invalid_input(nameserver):
    with pytest.raises(ValueError):
        split_host_port(nameserver)


def test_join_host_port_brackets_ipv6():
    assert join_host_port("::1", 53) == "[::1]:53"
    assert join_host_port("8.8.8.8", 53) == "8.8.8.8:53"


def test_create_normalizes_input():
    target = QueryTarget.create(domain="zonetransfer.me", nameserver="nsztm2.digi.ninja")

    assert target == QueryTarget(domain="zonetransfer.me.", nameserver="nsztm2.digi.ninja:53")
    assert target.host == "nsztm2.digi.ninja"
    assert target.port == 53


def test_default_nameserver():
    target = QueryTarget.create(domain="example.com")

    assert target.nameserver == DEFAULT_NAMESERVER == "8.8.8.8:53"


def test_target_is_immutable():
    target = QueryTarget.create(domain="example.com")

    with pytest.raises(dataclasses.FrozenInstanceError):
        target.domain = "example.org."  # type: ignore[misc]

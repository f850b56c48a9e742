from .dns_sweep import (
    DnsConfig,
    SessionController,
    enumerate_records,
)
from .models import SessionResult
from .target import QueryTarget

__all__ = [
    "DnsConfig",
    "SessionController",
    "enumerate_records",
    "SessionResult",
    "QueryTarget",
]

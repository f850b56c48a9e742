from .client import (
    AsyncDnsClient,
    DnsClient,
    DnsConfig,
    NameserverError,
    TransferEnvelope,
)
from .core import (
    PSEUDO_TYPES,
    QueryOutcome,
    RecordQuery,
    SessionController,
    SweepOrchestrator,
    SweepResult,
    ZoneTransferAttempt,
    ZoneTransferError,
    enumerate_records,
    sweep_rtypes,
)

__all__ = [
    "AsyncDnsClient",
    "DnsClient",
    "DnsConfig",
    "NameserverError",
    "TransferEnvelope",
    "PSEUDO_TYPES",
    "QueryOutcome",
    "RecordQuery",
    "SessionController",
    "SweepOrchestrator",
    "SweepResult",
    "ZoneTransferAttempt",
    "ZoneTransferError",
    "enumerate_records",
    "sweep_rtypes",
]

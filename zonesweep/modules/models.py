from __future__ import annotations

import abc
import dataclasses
from typing import Literal

import dns.rrset

from zonesweep.modules.target import QueryTarget


class Renderable(abc.ABC):
    @abc.abstractmethod
    def render(self) -> str:
        pass

    def __str__(self) -> str:
        return self.render()


@dataclasses.dataclass
class SessionResult(Renderable):
    '''
    The records found for a target and how they were found.
    '''
    target: QueryTarget
    method: Literal["axfr", "sweep"]
    records: list[dns.rrset.RRset] = dataclasses.field(default_factory=list)
    rtypes_queried: list[str] = dataclasses.field(default_factory=list)
    warnings: list[str] = dataclasses.field(default_factory=list)

    def lines(self) -> list[str]:
        '''
        Zone file text of every record, one record per line.
        '''
        output: list[str] = []
        for rrset in self.records:
            if not rrset:
                continue
            output.extend(rrset.to_text().splitlines())
        return output

    @property
    def total(self) -> int:
        return sum(len(rrset) for rrset in self.records)

    def summary(self) -> str:
        via = "zone transfer" if self.method == "axfr" else "record type sweep"
        return (
            f"{self.total} records for {self.target.domain} from "
            f"{self.target.nameserver} via {via}"
        )

    def render(self) -> str:
        return "\n".join(self.lines())

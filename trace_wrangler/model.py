"""
Span data model.

Mirrors the records emitted by the VM instrumentation layer: every span
carries the code context it ran in, the instrumentation point that emitted
it, its fuel/gas consumption and its timing. Contexts and points are the
deduplication keys for the two dictionaries; NormalizedSpan is the fact row
that references them by surrogate id.
"""

from dataclasses import dataclass, field
from typing import Optional, Any

METHOD_NUM_MAX = 0xFF
U64_MAX = 0xFFFF_FFFF_FFFF_FFFF


@dataclass(frozen=True)
class Context:
    """(code identifier, method number) pair a span occurred in."""
    code_cid: str = ""
    method_num: int = 0

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.code_cid:
            out["code_cid"] = self.code_cid
        if self.method_num:
            out["method_num"] = self.method_num
        return out


@dataclass(frozen=True)
class Point:
    """(event, label) pair identifying an instrumentation point."""
    event: str = ""
    label: str = ""

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.event:
            out["event"] = self.event
        if self.label:
            out["label"] = self.label
        return out


@dataclass(frozen=True)
class Consumption:
    """
    Fuel and gas consumed by a span.

    None means the value was absent on the wire, which is not the same as 0.
    """
    fuel_consumed: Optional[int] = None
    gas_consumed: Optional[int] = None

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.fuel_consumed is not None:
            out["fuel_consumed"] = self.fuel_consumed
        if self.gas_consumed is not None:
            out["gas_consumed"] = self.gas_consumed
        return out


@dataclass(frozen=True)
class Timing:
    """Elapsed time since message start and since the previous span."""
    elapsed_cum_ns: int = 0
    elapsed_rel_ns: int = 0

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.elapsed_cum_ns:
            out["elapsed_cum_ns"] = self.elapsed_cum_ns
        if self.elapsed_rel_ns:
            out["elapsed_rel_ns"] = self.elapsed_rel_ns
        return out


@dataclass(frozen=True)
class RawSpan:
    """One decoded input record."""
    context: Context = field(default_factory=Context)
    point: Point = field(default_factory=Point)
    consumption: Consumption = field(default_factory=Consumption)
    timing: Timing = field(default_factory=Timing)


@dataclass(frozen=True)
class NormalizedSpan:
    """Fact row: a span with its context and point replaced by surrogate ids."""
    message_id: int
    context_id: int
    point_id: int
    elapsed_rel_ns: int
    elapsed_cum_ns: int
    fuel_consumed: Optional[int] = None
    gas_consumed: Optional[int] = None

    @classmethod
    def from_raw(
        cls,
        span: RawSpan,
        message_id: int,
        context_id: int,
        point_id: int,
    ) -> "NormalizedSpan":
        return cls(
            message_id=message_id,
            context_id=context_id,
            point_id=point_id,
            elapsed_rel_ns=span.timing.elapsed_rel_ns,
            elapsed_cum_ns=span.timing.elapsed_cum_ns,
            fuel_consumed=span.consumption.fuel_consumed,
            gas_consumed=span.consumption.gas_consumed,
        )

    @property
    def consumption(self) -> Consumption:
        return Consumption(self.fuel_consumed, self.gas_consumed)

    @property
    def timing(self) -> Timing:
        return Timing(self.elapsed_cum_ns, self.elapsed_rel_ns)

"""Typed event payloads published on the event bus.

Each dataclass here is the payload of one or more ``SimEvent`` types; the
``SimulationSummary`` doubles as the orchestrator's final result.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from netlab_sim.core.enums import (
    DropReason,
    LogLevel,
    RunState,
    SimulationSpeed,
    TableAction,
    TableType,
)
from netlab_sim.core.packet import Packet


@dataclass(frozen=True)
class ConsoleLog:
    """One console line.

    Attributes:
        level: info / warn / error / success tag.
        tick: Scheduler tick at which the line was produced.
        source: Label of the device (or "Engine") that produced it.
        message: Human readable line.
        details: Optional technical detail.
    """

    level: LogLevel
    tick: int
    source: str
    message: str
    details: Optional[str] = None

    def __str__(self) -> str:
        text = f"[{self.tick:>4}] {self.level.value.upper():<7} {self.source}: {self.message}"
        if self.details:
            text += f" ({self.details})"
        return text


@dataclass(frozen=True)
class PacketCreatedEvent:
    packet: Packet


@dataclass(frozen=True)
class PacketMoveEvent:
    packet: Packet
    from_device_id: str
    to_device_id: str
    link_id: str
    animation_duration_ms: float


@dataclass(frozen=True)
class PacketDropEvent:
    packet: Packet
    at_device_id: str
    reason: DropReason
    explanation: str


@dataclass(frozen=True)
class PacketArriveEvent:
    packet: Packet
    at_device_id: str
    explanation: str


@dataclass(frozen=True)
class TableUpdateEvent:
    device_id: str
    table_type: TableType
    action: TableAction
    entry: Any
    explanation: str


@dataclass(frozen=True)
class TickEvent:
    tick: int


@dataclass(frozen=True)
class SimStartEvent:
    mode: str


@dataclass(frozen=True)
class SpeedChangeEvent:
    speed: SimulationSpeed


@dataclass(frozen=True)
class PortStatusEvent:
    device_id: str
    interface_id: str
    up: bool


@dataclass(frozen=True)
class AnnounceEvent:
    message: str
    priority: str = "polite"


@dataclass
class SimulationSummary:
    """Final outcome of one ping run.

    Attributes:
        success: Whether the echo reply reached the sender.
        state: Terminal state of the run.
        total_ticks: Ticks elapsed.
        total_packets: Packets created by the factory during the run.
        delivered_packets: ICMP packets delivered to their L3 destination.
        dropped_packets: Packets dropped anywhere in the topology.
        path: Device ids traversed by the echo request.
        total_latency_ms: Simulated latency (ticks times tick interval).
        logs: Console lines accumulated during the run.
        errors: Terminal error messages.
    """

    success: bool
    state: RunState
    total_ticks: int = 0
    total_packets: int = 0
    delivered_packets: int = 0
    dropped_packets: int = 0
    path: List[str] = field(default_factory=list)
    total_latency_ms: float = 0.0
    logs: List[ConsoleLog] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def explanation(self) -> str:
        """Last error message, or an empty string for a successful run."""
        return self.errors[-1] if self.errors else ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "state": self.state.name,
            "total_ticks": self.total_ticks,
            "total_packets": self.total_packets,
            "delivered_packets": self.delivered_packets,
            "dropped_packets": self.dropped_packets,
            "path": list(self.path),
            "total_latency_ms": self.total_latency_ms,
            "logs": [str(log) for log in self.logs],
            "errors": list(self.errors),
        }

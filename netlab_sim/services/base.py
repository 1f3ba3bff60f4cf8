"""Shared plumbing for protocol services."""

from typing import Optional

from netlab_sim.core.device_state import DeviceStateManager
from netlab_sim.core.enums import LogLevel, SimEvent
from netlab_sim.core.event_bus import EventBus
from netlab_sim.core.events import AnnounceEvent, ConsoleLog, PacketCreatedEvent
from netlab_sim.core.packet import Packet
from netlab_sim.core.scheduler import PacketScheduler
from netlab_sim.core.topology import Device

_CONSOLE_EVENTS = {
    LogLevel.INFO: SimEvent.CONSOLE_LOG,
    LogLevel.SUCCESS: SimEvent.CONSOLE_LOG,
    LogLevel.WARN: SimEvent.CONSOLE_WARN,
    LogLevel.ERROR: SimEvent.CONSOLE_ERROR,
}


def publish_log(event_bus: EventBus, log: ConsoleLog) -> None:
    """Publish a console line on the channel matching its level."""
    event_bus.publish(_CONSOLE_EVENTS[log.level], log)


class ProtocolService:
    """Base class for the ARP, ICMP, switching and routing services.

    Attributes:
        event_bus: Bus used to announce created packets and log lines.
        device_states: Owner of every device's tables.
        scheduler: Source of the current tick.
    """

    def __init__(
        self,
        event_bus: EventBus,
        device_states: DeviceStateManager,
        scheduler: PacketScheduler,
    ):
        self.event_bus = event_bus
        self.device_states = device_states
        self.scheduler = scheduler

    def _log(
        self,
        level: LogLevel,
        device: Device,
        message: str,
        details: Optional[str] = None,
    ) -> ConsoleLog:
        return ConsoleLog(level, self.scheduler.current_tick, device.label, message, details)

    def _emit(self, log: ConsoleLog) -> None:
        publish_log(self.event_bus, log)

    def _created(self, packet: Packet) -> None:
        self.event_bus.publish(SimEvent.PACKET_CREATED, PacketCreatedEvent(packet))

    def _announce(self, message: str, priority: str = "polite") -> None:
        self.event_bus.publish(SimEvent.ANNOUNCE, AnnounceEvent(message, priority))

"""Packet scheduler for network simulation.

This module defines the PacketScheduler class, a tick-ordered event queue.
Nothing moves between devices instantly: every hop is scheduled with a delay
of at least one tick.
"""

import bisect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import simpy

from netlab_sim.config import SimulationConfig
from netlab_sim.core.enums import ScheduledEventType, SimEvent, SimulationSpeed
from netlab_sim.core.event_bus import EventBus
from netlab_sim.core.events import SimStartEvent, SpeedChangeEvent, TickEvent
from netlab_sim.core.packet import Packet


@dataclass
class ScheduledEvent:
    """An entry in the scheduler queue.

    Attributes:
        id: Unique identifier for the event.
        scheduled_tick: Tick at which the event fires.
        event_type: What the event represents.
        packet: Associated packet, if any.
        data: Free-form associated data (target device, ingress interface).
    """

    id: str
    scheduled_tick: int
    event_type: ScheduledEventType
    packet: Optional[Packet] = None
    data: Dict[str, Any] = field(default_factory=dict)


class PacketScheduler:
    """Tick-based scheduler.

    Events for the same tick are delivered in the order they were scheduled,
    and never before their tick.

    Attributes:
        event_bus: Bus used for tick/start/pause/reset notifications.
        config: Engine configuration (latency, speed).
        current_tick: Number of ticks processed since the last reset.
    """

    def __init__(self, event_bus: EventBus, config: Optional[SimulationConfig] = None):
        self.event_bus = event_bus
        self.config = config or SimulationConfig()
        self.current_tick = 0
        self.running = False
        self._queue: List[ScheduledEvent] = []
        self._ticks: List[int] = []
        self._next_event_id = 0
        self._process: Optional[simpy.Process] = None

    def schedule(
        self,
        event_type: ScheduledEventType,
        delay_ticks: int,
        packet: Optional[Packet] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Schedule an event ``delay_ticks`` ticks from now.

        Args:
            event_type: Type of the event.
            delay_ticks: Delay in ticks, at least 1.
            packet: Optional packet carried by the event.
            data: Optional associated data.

        Returns:
            The identifier of the scheduled event.
        """
        if delay_ticks < 1:
            raise ValueError(f"delay_ticks must be >= 1, got {delay_ticks}")
        self._next_event_id += 1
        event = ScheduledEvent(
            id=f"evt-{self._next_event_id}",
            scheduled_tick=self.current_tick + delay_ticks,
            event_type=event_type,
            packet=packet,
            data=dict(data or {}),
        )
        # bisect_right keeps FIFO order among events due on the same tick.
        index = bisect.bisect_right(self._ticks, event.scheduled_tick)
        self._ticks.insert(index, event.scheduled_tick)
        self._queue.insert(index, event)
        return event.id

    def schedule_packet_forward(
        self,
        packet: Packet,
        data: Optional[Dict[str, Any]] = None,
        latency_multiplier: float = 1.0,
    ) -> str:
        """Schedule a packet hop using the configured per-hop latency."""
        delay = max(1, round(self.config.hop_delay_ticks * latency_multiplier))
        return self.schedule(ScheduledEventType.PACKET_FORWARD, delay, packet, data)

    def cancel(self, event_id: str) -> bool:
        """Cancel a scheduled event.

        Returns:
            True if the event was queued and has been removed.
        """
        for index, event in enumerate(self._queue):
            if event.id == event_id:
                del self._queue[index]
                del self._ticks[index]
                return True
        return False

    def tick(self) -> List[ScheduledEvent]:
        """Advance one tick and return every event now due."""
        self.current_tick += 1
        self.event_bus.publish(SimEvent.SIM_TICK, TickEvent(self.current_tick))

        due = bisect.bisect_right(self._ticks, self.current_tick)
        ready = self._queue[:due]
        del self._queue[:due]
        del self._ticks[:due]
        return ready

    def start(
        self,
        env: simpy.Environment,
        on_tick: Callable[[List[ScheduledEvent]], None],
        mode: str = "auto",
    ) -> simpy.Process:
        """Run ``tick`` on a simulated timer until ``pause`` is called.

        Args:
            env: SimPy environment providing the clock.
            on_tick: Called with the events released by each tick.
            mode: Label published with the start event.

        Returns:
            The SimPy process driving the ticks.
        """
        if self.running and self._process is not None:
            return self._process
        self.running = True
        self.event_bus.publish(SimEvent.SIM_START, SimStartEvent(mode))

        def ticker():
            while self.running:
                yield env.timeout(self.tick_interval_ms() / 1000)
                if not self.running:
                    break
                on_tick(self.tick())

        self._process = env.process(ticker())
        return self._process

    def pause(self) -> None:
        self.running = False
        self._process = None
        self.event_bus.publish(SimEvent.SIM_PAUSE, None)

    def reset(self) -> None:
        """Stop, clear the queue and rewind to tick 0."""
        self.running = False
        self._process = None
        self._queue.clear()
        self._ticks.clear()
        self.current_tick = 0
        self._next_event_id = 0
        self.event_bus.publish(SimEvent.SIM_RESET, None)

    def set_speed(self, speed: SimulationSpeed) -> None:
        self.config.speed = SimulationSpeed(speed)
        self.event_bus.publish(SimEvent.SIM_SPEED_CHANGE, SpeedChangeEvent(self.config.speed))

    def tick_interval_ms(self) -> float:
        """Wall-clock interval between ticks for the current speed."""
        return max(10.0, self.config.tick_interval_ms * self.config.speed.multiplier)

    def animation_duration_ms(self) -> float:
        """Animation length of one hop for the current speed (presentation only)."""
        return self.config.base_latency_ms * self.config.speed.multiplier

    def is_empty(self) -> bool:
        return not self._queue

    def queue_length(self) -> int:
        return len(self._queue)

    def pending(self) -> List[ScheduledEvent]:
        return list(self._queue)

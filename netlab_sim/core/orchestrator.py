"""Simulation orchestrator.

This module defines the SimulationOrchestrator class, which wires the event
bus, scheduler, device tables and protocol services together and drives one
ping from validation to a final SimulationSummary:

    Idle -> Resolving <-> Forwarding -> Delivered | Failed | TimedOut

The run only moves forward when a tick is processed, either synchronously
through ``step``/``execute_ping`` or on a simpy clock through
``animate_ping``.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

import simpy

from netlab_sim.config import SimulationConfig
from netlab_sim.core.device_state import DeviceState, DeviceStateManager
from netlab_sim.core.enums import (
    ArpOperation,
    DropReason,
    LinkStatus,
    LogLevel,
    PacketKind,
    Protocol,
    RunState,
    ScheduledEventType,
    SimEvent,
    SimulationSpeed,
    SwitchAction,
)
from netlab_sim.core.event_bus import EventBus
from netlab_sim.core.events import (
    AnnounceEvent,
    ConsoleLog,
    PacketArriveEvent,
    PacketDropEvent,
    PacketMoveEvent,
    SimStartEvent,
    SimulationSummary,
)
from netlab_sim.core.packet import Packet, PacketFactory
from netlab_sim.core.scheduler import PacketScheduler, ScheduledEvent
from netlab_sim.core.topology import Device, NetworkInterface, Topology, has_gateway
from netlab_sim.services.arp import ArpService
from netlab_sim.services.base import publish_log
from netlab_sim.services.icmp import IcmpService
from netlab_sim.services.routing import RoutingService
from netlab_sim.services.switching import SwitchingService
from netlab_sim.utils.ip import BROADCAST_MAC, ZERO_MAC, is_valid_ip, same_subnet

logger = logging.getLogger(__name__)

ENGINE = "Engine"

_LOGGING_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

# ICMP unreachable codes
NET_UNREACHABLE = 0
HOST_UNREACHABLE = 1

PendingKey = Tuple[str, str]


@dataclass
class SimulationState:
    """Snapshot of a run for observers.

    Attributes:
        active_packets: Packets currently on a link.
        delivered_packets: ICMP packets delivered to their L3 destination.
        dropped_packets: Dropped packets with their reason.
        logs: Console lines of the run.
        run_state: Current state of the ping state machine.
        current_tick: Scheduler tick.
        speed: Presentation speed.
    """

    active_packets: List[Packet]
    delivered_packets: List[Packet]
    dropped_packets: List[Tuple[Packet, DropReason]]
    logs: List[ConsoleLog]
    run_state: RunState
    current_tick: int
    speed: SimulationSpeed

    @property
    def is_running(self) -> bool:
        return self.run_state in (RunState.RESOLVING, RunState.FORWARDING)


class SimulationOrchestrator:
    """Coordinates a ping across the topology.

    Attributes:
        config: Engine configuration.
        event_bus: Bus every component publishes on.
        scheduler: Tick-ordered event queue.
        device_states: Owner of every device's tables.
        factory: Packet factory of this orchestrator.
        topology: Topology currently simulated.
    """

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        config: Optional[SimulationConfig] = None,
    ):
        self.config = config or SimulationConfig()
        self.event_bus = event_bus or EventBus(self.config.event_log_size)
        self.scheduler = PacketScheduler(self.event_bus, self.config)
        self.device_states = DeviceStateManager(self.event_bus, self.config)
        self.factory = PacketFactory()

        self.arp = ArpService(self.event_bus, self.device_states, self.scheduler, self.factory)
        self.icmp = IcmpService(
            self.event_bus,
            self.device_states,
            self.scheduler,
            self.factory,
            self.config.default_ttl,
        )
        self.routing = RoutingService(self.event_bus, self.device_states, self.scheduler)
        self.switching = SwitchingService(self.event_bus, self.device_states, self.scheduler)

        self.topology = Topology()

        self._run_state = RunState.IDLE
        self._summary: Optional[SimulationSummary] = None
        self._source_id: Optional[str] = None
        self._target_ip = ""
        self._pending: Dict[PendingKey, List[Packet]] = {}
        self._arp_timers: Dict[PendingKey, str] = {}
        self._active: Dict[str, Packet] = {}
        self._delivered: List[Packet] = []
        self._dropped: List[Tuple[Packet, DropReason]] = []
        self._logs: List[ConsoleLog] = []
        self._errors: List[str] = []
        self._trails: Dict[str, List[str]] = {}
        self._switched: Set[Tuple[str, str, str]] = set()
        self._path: List[str] = []

        for event_type in (SimEvent.CONSOLE_LOG, SimEvent.CONSOLE_WARN, SimEvent.CONSOLE_ERROR):
            self.event_bus.subscribe(event_type, self._collect_log)

    # Public API

    def initialize(self, topology: Topology) -> None:
        """Load a topology and build every device's connected routes."""
        self.update_graph(topology)
        self._record(
            LogLevel.INFO,
            ENGINE,
            "Simulation engine initialized",
            f"{len(topology.devices)} devices, {len(topology.links)} links",
        )

    def update_graph(self, topology: Topology) -> None:
        """Refresh the engine after the topology changed.

        State of removed devices is dropped, ARP/CAM entries that reference
        vanished interfaces are pruned and connected routes are recomputed.
        """
        self.topology = topology
        for device_id in self.device_states.device_ids():
            if topology.device(device_id) is None:
                self.device_states.remove(device_id)

        for device in topology:
            self.device_states.get_or_create(device.id, device.device_type)
            self.device_states.prune_interfaces(device.id, [i.id for i in device.interfaces])
            self._build_routes(device)

    def start_ping(
        self, source_id: str, target_id: str, ttl: Optional[int] = None
    ) -> Optional[SimulationSummary]:
        """Validate and launch a ping.

        Args:
            source_id: Device sending the echo request.
            target_id: Device being pinged.
            ttl: Initial TTL, defaults to the configured TTL.

        Returns:
            A failed summary when a precondition does not hold, otherwise
            None; the run then advances through ``step``.
        """
        self._reset_run()
        self.factory.reset()

        source = self.topology.device(source_id)
        target = self.topology.device(target_id)
        if source is None or target is None:
            return self._finish(RunState.FAILED, "Source or target device not found")

        error = self._validate(source, target)
        if error:
            return self._finish(RunState.FAILED, error)

        target_ip = target.primary_address
        out_interface = self._source_interface(source, target_ip)
        if out_interface is None:
            return self._finish(
                RunState.FAILED, f"{source.label} has no active connected interface"
            )

        if self.icmp.needs_gateway(source, target_ip, out_interface):
            if not has_gateway(source):
                self._announce(f"{source.label}: no gateway, cannot reach {target_ip}")
                return self._finish(
                    RunState.FAILED,
                    f"No gateway configured on {source.label} to reach {target_ip}",
                )
            self._record(
                LogLevel.INFO,
                source.label,
                f"Destination on another network, using gateway {source.gateway}",
            )

        self._source_id = source.id
        self._target_ip = target_ip
        self.event_bus.publish(SimEvent.SIM_START, SimStartEvent("ping"))
        self._record(LogLevel.INFO, source.label, f"Pinging {target.label} ({target_ip})...")
        hops = self.topology.shortest_path(source.id, target.id)
        self._record(LogLevel.INFO, ENGINE, "Shortest topology path", " -> ".join(hops))
        self._announce(f"Starting ping from {source.label} to {target.label}", "assertive")

        result = self.icmp.create_ping(source, target_ip, target.id, ZERO_MAC, out_interface, ttl)
        self._publish_logs(result.logs)
        if not result.success:
            return self._finish(RunState.FAILED, "Could not create the ICMP echo request")

        self._run_state = RunState.FORWARDING
        for packet in result.packets:
            self._trails[packet.id] = [source.id]
            self._route_and_forward(source, packet)
        self._refresh_run_state()
        return self._summary

    def step(self) -> Optional[SimulationSummary]:
        """Advance the current run by one tick.

        Returns:
            The summary once the run has ended, otherwise None.
        """
        if self._run_state.is_terminal:
            return self._summary
        if self._run_state is RunState.IDLE:
            return None
        return self._advance(self.scheduler.tick())

    def execute_ping(
        self, source_id: str, target_id: str, ttl: Optional[int] = None
    ) -> SimulationSummary:
        """Run a ping to completion, stepping synchronously."""
        summary = self.start_ping(source_id, target_id, ttl)
        while summary is None:
            summary = self.step()
        return summary

    def animate_ping(
        self,
        env: simpy.Environment,
        source_id: str,
        target_id: str,
        ttl: Optional[int] = None,
    ) -> simpy.Event:
        """Run a ping on a simpy clock, one tick per tick interval.

        Args:
            env: SimPy environment providing the clock.
            source_id: Device sending the echo request.
            target_id: Device being pinged.
            ttl: Initial TTL.

        Returns:
            A simpy event that succeeds with the SimulationSummary.
        """
        done = env.event()
        summary = self.start_ping(source_id, target_id, ttl)
        if summary is not None:
            done.succeed(summary)
            return done

        def on_tick(events: List[ScheduledEvent]) -> None:
            result = self._advance(events)
            if result is not None and not done.triggered:
                self.scheduler.pause()
                done.succeed(result)

        self.scheduler.start(env, on_tick, mode="animate")
        return done

    @property
    def run_state(self) -> RunState:
        return self._run_state

    @property
    def state(self) -> SimulationState:
        return SimulationState(
            active_packets=list(self._active.values()),
            delivered_packets=list(self._delivered),
            dropped_packets=list(self._dropped),
            logs=list(self._logs),
            run_state=self._run_state,
            current_tick=self.scheduler.current_tick,
            speed=self.config.speed,
        )

    def set_speed(self, speed: SimulationSpeed) -> None:
        self.scheduler.set_speed(speed)

    def get_device_state(self, device_id: str) -> Optional[DeviceState]:
        return self.device_states.get(device_id)

    def reset(self) -> None:
        """Cancel any run and clear every table and pending resolution."""
        self.device_states.reset()
        self._reset_run()
        for device in self.topology:
            self.device_states.get_or_create(device.id, device.device_type)
            self._build_routes(device)

    def _build_routes(self, device: Device) -> None:
        self.routing.initialize_connected_routes(device)
        if not device.static_routes or not self.device_states.is_l3_device(device.device_type):
            return
        table = self.device_states.get(device.id).routing_table
        for route in device.static_routes:
            table.add_static_route(
                route["network"],
                route["mask"],
                route["next_hop"],
                route.get("out_interface"),
            )

    # Tick loop

    def _advance(self, events: List[ScheduledEvent]) -> Optional[SimulationSummary]:
        tick = self.scheduler.current_tick
        if tick > self.config.max_ticks:
            return self._finish(
                RunState.TIMED_OUT,
                f"Simulation exceeded tick limit of {self.config.max_ticks} ticks",
            )

        for event in events:
            self._dispatch(event)
            if self._run_state.is_terminal:
                return self._summary

        if tick % self.config.aging_interval == 0:
            self.device_states.age_all(tick)

        if self.scheduler.is_empty() and not self._active:
            return self._finish(RunState.FAILED, f"No response from {self._target_ip}")

        self._refresh_run_state()
        return None

    def _dispatch(self, event: ScheduledEvent) -> None:
        if event.event_type is ScheduledEventType.PACKET_FORWARD:
            self._deliver(event)
        elif event.event_type is ScheduledEventType.ARP_TIMEOUT:
            self._expire_resolution(event.data["device_id"], event.data["awaited_ip"])

    def _deliver(self, event: ScheduledEvent) -> None:
        packet = event.packet
        self._active.pop(packet.id, None)

        device = self.topology.device(event.data["target_device_id"])
        if device is None:
            logger.warning(
                "Discarding %s: device %s left the topology",
                packet.id,
                event.data["target_device_id"],
            )
            return

        ingress = device.interface(event.data.get("ingress_interface_id"))
        packet = packet.arrived(device.id, ingress.id if ingress is not None else None)
        if packet.kind is PacketKind.ICMP_ECHO_REQUEST:
            self._trails.setdefault(packet.id, []).append(device.id)

        if not device.is_online():
            self._drop(packet, device, DropReason.UNREACHABLE, f"{device.label} is offline")
            return
        if ingress is None or not ingress.admin_up:
            port = ingress.short_name if ingress is not None else "?"
            self._drop(
                packet, device, DropReason.PORT_DOWN, f"Port {port} on {device.label} is down"
            )
            return

        self._process_at_device(device, packet, ingress)

    # Packet processing

    def _process_at_device(
        self, device: Device, packet: Packet, ingress: NetworkInterface
    ) -> None:
        is_switch = self.device_states.is_switch(device.device_type)
        is_l3 = self.device_states.is_l3_device(device.device_type)

        if is_switch and is_l3:
            if device.owns_address(packet.layer3.dst_ip) or device.owns_mac(
                packet.layer2.dst_mac
            ):
                self._handle_l3(device, packet, ingress)
            else:
                self._handle_switching(device, packet, ingress)
        elif is_switch:
            self._handle_switching(device, packet, ingress)
        elif is_l3:
            self._handle_l3(device, packet, ingress)
        else:
            self._record(
                LogLevel.WARN,
                device.label,
                f"Cannot process {packet.kind.value}: unsupported device type",
            )

    def _handle_switching(
        self, device: Device, packet: Packet, ingress: NetworkInterface
    ) -> None:
        # a frame passes each switch once; a repeat means a Layer-2 loop
        key = (device.id, packet.flood_id or packet.id, packet.layer2.src_mac.upper())
        if key in self._switched:
            self._drop(
                packet,
                device,
                DropReason.LOOP_DETECTED,
                f"Switching loop detected at {device.label}",
            )
            return
        self._switched.add(key)

        decision = self.switching.process_frame(device, packet, ingress.id)
        self._publish_logs(decision.logs)
        if decision.action in (SwitchAction.FILTER, SwitchAction.DROP):
            return

        clone = len(decision.out_ports) > 1
        for port_id in decision.out_ports:
            out_interface = device.interface(port_id)
            if out_interface is None:
                continue
            if clone:
                copy = packet.clone_for_port(device.id, port_id)
            else:
                copy = packet.hopped(device.id)
            if packet.kind is PacketKind.ICMP_ECHO_REQUEST:
                self._trails[copy.id] = list(self._trails.get(packet.id, []))
            self._transmit(device, copy, out_interface)

    def _handle_l3(self, device: Device, packet: Packet, ingress: NetworkInterface) -> None:
        dst_mac = packet.layer2.dst_mac.upper()
        if not packet.is_broadcast and dst_mac != BROADCAST_MAC and not device.owns_mac(dst_mac):
            self._record(
                LogLevel.INFO,
                device.label,
                f"Frame for {dst_mac} ignored, not addressed to this device",
            )
            return

        if packet.protocol is Protocol.ARP:
            arp = packet.arp
            if arp.operation is ArpOperation.REQUEST:
                replies = self.arp.handle_request(device, packet, ingress)
                self._release_pending(device, arp.sender_ip)
                for reply in replies:
                    self._transmit(device, reply, ingress)
            else:
                self.arp.handle_reply(device, packet, ingress)
                self._release_pending(device, arp.sender_ip)
            return

        if self.routing.is_packet_for_me(device, packet.layer3.dst_ip):
            self._deliver_local(device, packet, ingress)
            return

        if not self.device_states.is_router(device.device_type):
            self._drop(
                packet,
                device,
                DropReason.NO_ROUTE,
                f"{device.label} does not forward packets for {packet.layer3.dst_ip}",
            )
            return

        if packet.layer3.ttl - 1 <= 0:
            self._ttl_expired(device, packet, ingress)
            return

        self._route_and_forward(device, packet.decrement_ttl(), ingress)

    def _deliver_local(
        self, device: Device, packet: Packet, ingress: Optional[NetworkInterface]
    ) -> None:
        self._delivered.append(packet)

        if packet.kind is PacketKind.ICMP_ECHO_REQUEST:
            self._path = list(self._trails.get(packet.id, [device.id]))
            self._arrive(packet, device, f"ICMP echo request delivered to {device.label}")
            result = self.icmp.handle_echo_request(device, packet, ingress)
            self._publish_logs(result.logs)
            for reply in result.packets:
                self._route_and_forward(device, reply)
            return

        if packet.kind is PacketKind.ICMP_ECHO_REPLY:
            result = self.icmp.handle_echo_reply(device, packet)
            self._publish_logs(result.logs)
            self._arrive(packet, device, f"ICMP echo reply received from {packet.layer3.src_ip}")
            if device.id == self._source_id:
                self._finish(RunState.DELIVERED)
            return

        self._arrive(packet, device, f"ICMP {packet.icmp.icmp_type.value} received")
        if packet.kind is PacketKind.ICMP_TTL_EXCEEDED:
            message = f"TTL exceeded in transit, reported by {packet.layer3.src_ip}"
        elif packet.icmp.code == NET_UNREACHABLE:
            message = f"Destination unreachable from {packet.layer3.src_ip}: no route to host"
        else:
            message = f"Destination unreachable from {packet.layer3.src_ip}: host unreachable"
        self._finish(RunState.FAILED, message, source=device.label)

    def _route_and_forward(
        self,
        device: Device,
        packet: Packet,
        ingress: Optional[NetworkInterface] = None,
    ) -> None:
        decision = self.routing.route_packet(device, packet)
        self._publish_logs(decision.logs)

        if not decision.can_route:
            self._drop(packet, device, decision.drop_reason, decision.fail_reason)
            if ingress is not None:
                self._send_unreachable(device, packet, ingress, NET_UNREACHABLE)
            return

        if decision.local:
            self._deliver_local(device, packet, ingress)
            return

        out_interface = decision.out_interface
        next_hop = decision.next_hop_ip
        key = (device.id, next_hop)
        if key in self._pending:
            self._pending[key].append(packet)
            self._record(
                LogLevel.INFO,
                device.label,
                f"Waiting for ARP resolution of {next_hop}",
            )
            return

        resolution = self.arp.resolve_mac(device, next_hop, out_interface)
        self._publish_logs(resolution.logs)
        if resolution.resolved:
            frame = packet.rewrite_l2(device.mac_on(out_interface), resolution.mac)
            self._transmit(device, frame, out_interface)
            return

        if not resolution.packets:
            self._drop(
                packet,
                device,
                DropReason.NO_IP_CONFIG,
                f"{out_interface.short_name} on {device.label} has no IP address",
            )
            return

        self._pending[key] = [packet]
        self._arp_timers[key] = self.scheduler.schedule(
            ScheduledEventType.ARP_TIMEOUT,
            self.config.arp_reply_timeout,
            data={"device_id": device.id, "awaited_ip": next_hop},
        )
        for request in resolution.packets:
            self._transmit(device, request, out_interface)

    def _transmit(self, device: Device, packet: Packet, out_interface: NetworkInterface) -> None:
        """Put a packet on the link plugged into ``out_interface``."""
        if not out_interface.admin_up:
            self._drop(
                packet,
                device,
                DropReason.PORT_DOWN,
                f"Interface {out_interface.short_name} on {device.label} is administratively down",
            )
            return

        found = None
        if out_interface.connected_edge_id:
            found = self.topology.find_connected(device.id, out_interface.connected_edge_id)
        if found is None:
            self._drop(
                packet,
                device,
                DropReason.NO_INTERFACE,
                f"Interface {out_interface.short_name} on {device.label} is not connected",
            )
            return

        neighbor, link = found
        if LinkStatus.DOWN in (device.link_status, neighbor.link_status):
            self._drop(packet, device, DropReason.PORT_DOWN, f"Link {link.id} is down")
            return

        ingress = self.topology.ingress_interface(neighbor, link)
        self._active[packet.id] = packet
        self.event_bus.publish(
            SimEvent.PACKET_MOVE,
            PacketMoveEvent(
                packet, device.id, neighbor.id, link.id, self.scheduler.animation_duration_ms()
            ),
        )
        self.scheduler.schedule_packet_forward(
            packet,
            {
                "target_device_id": neighbor.id,
                "ingress_interface_id": ingress.id if ingress is not None else None,
                "link_id": link.id,
                "from_device_id": device.id,
            },
        )

    # Pending resolutions

    def _release_pending(self, device: Device, resolved_ip: str) -> None:
        key = (device.id, resolved_ip)
        packets = self._pending.pop(key, None)
        if not packets:
            return
        timer = self._arp_timers.pop(key, None)
        if timer is not None:
            self.scheduler.cancel(timer)

        self._record(
            LogLevel.INFO,
            device.label,
            f"ARP resolved {resolved_ip}, releasing {len(packets)} pending packet(s)",
        )
        for packet in packets:
            self._route_and_forward(device, packet, device.interface(packet.ingress_interface_id))

    def _expire_resolution(self, device_id: str, awaited_ip: str) -> None:
        key = (device_id, awaited_ip)
        self._arp_timers.pop(key, None)
        packets = self._pending.pop(key, None)
        device = self.topology.device(device_id)
        if not packets or device is None:
            return

        for packet in packets:
            self._drop(
                packet,
                device,
                DropReason.NO_ARP_REPLY,
                f"No ARP reply for {awaited_ip} at {device.label}",
            )
            ingress = device.interface(packet.ingress_interface_id)
            if ingress is not None:
                self._send_unreachable(device, packet, ingress, HOST_UNREACHABLE)

    # Errors

    def _ttl_expired(self, device: Device, packet: Packet, ingress: NetworkInterface) -> None:
        self._drop(packet, device, DropReason.TTL_EXPIRED, f"TTL expired at {device.label}")
        if packet.is_error:
            return
        result = self.icmp.generate_ttl_exceeded(device, packet, ingress)
        self._publish_logs(result.logs)
        for error in result.packets:
            self._transmit(device, error, ingress)

    def _send_unreachable(
        self, device: Device, packet: Packet, ingress: NetworkInterface, code: int
    ) -> None:
        # Only routing devices report, and never about another ICMP error.
        if not self.device_states.is_router(device.device_type) or packet.is_error:
            return
        result = self.icmp.generate_unreachable(device, packet, ingress, code)
        self._publish_logs(result.logs)
        for error in result.packets:
            self._transmit(device, error, ingress)

    def _drop(
        self, packet: Packet, device: Device, reason: DropReason, explanation: str
    ) -> None:
        self._dropped.append((packet, reason))
        if explanation not in self._errors:
            self._errors.append(explanation)
        if packet.kind is PacketKind.ICMP_ECHO_REQUEST:
            self._path = list(self._trails.get(packet.id, [device.id]))
        self.event_bus.publish(
            SimEvent.PACKET_DROP, PacketDropEvent(packet, device.id, reason, explanation)
        )
        self._record(LogLevel.ERROR, device.label, f"Packet dropped: {explanation}")

    # Helpers

    def _validate(self, source: Device, target: Device) -> Optional[str]:
        if source.id == target.id:
            return "Source and target must be different devices"
        for device in (source, target):
            if not device.is_online():
                return f"{device.label} is offline"
        for device in (source, target):
            if not is_valid_ip(device.primary_address):
                return f"{device.label} has no IP address configured"
        if source.link_status is LinkStatus.DOWN:
            return f"Link of {source.label} is down"
        if not source.active_interfaces():
            return f"{source.label} has no active connected interface"
        if not self.topology.has_path(source.id, target.id):
            return f"No path between {source.label} and {target.label}"
        return None

    @staticmethod
    def _source_interface(source: Device, target_ip: str) -> Optional[NetworkInterface]:
        active = source.active_interfaces()
        addressed = [i for i in active if is_valid_ip(source.address_on(i)[0])]
        for iface in addressed:
            address, mask = source.address_on(iface)
            if same_subnet(address, mask, target_ip, mask):
                return iface
        if addressed:
            return addressed[0]
        return active[0] if active else None

    def _arrive(self, packet: Packet, device: Device, explanation: str) -> None:
        self.event_bus.publish(
            SimEvent.PACKET_ARRIVE, PacketArriveEvent(packet, device.id, explanation)
        )

    def _announce(self, message: str, priority: str = "polite") -> None:
        self.event_bus.publish(SimEvent.ANNOUNCE, AnnounceEvent(message, priority))

    def _refresh_run_state(self) -> None:
        if not self._run_state.is_terminal:
            self._run_state = RunState.RESOLVING if self._pending else RunState.FORWARDING

    def _finish(
        self, state: RunState, message: Optional[str] = None, source: str = ENGINE
    ) -> SimulationSummary:
        if message:
            self._errors.append(message)
            self._record(LogLevel.ERROR, source, message)
        elif state is RunState.DELIVERED:
            self._record(LogLevel.SUCCESS, ENGINE, "Ping completed successfully")

        self._run_state = state
        ticks = self.scheduler.current_tick
        success = state is RunState.DELIVERED
        self._summary = SimulationSummary(
            success=success,
            state=state,
            total_ticks=ticks,
            total_packets=self.factory.created,
            delivered_packets=len(self._delivered),
            dropped_packets=len(self._dropped),
            path=list(self._path),
            total_latency_ms=ticks * self.config.tick_interval_ms,
            logs=list(self._logs),
            errors=[] if success else list(self._errors),
        )
        self.event_bus.publish(SimEvent.SIM_COMPLETE, self._summary)
        return self._summary

    def _reset_run(self) -> None:
        self.scheduler.reset()
        self._run_state = RunState.IDLE
        self._summary = None
        self._source_id = None
        self._target_ip = ""
        self._pending.clear()
        self._arp_timers.clear()
        self._active.clear()
        self._delivered.clear()
        self._dropped.clear()
        self._logs.clear()
        self._errors.clear()
        self._trails.clear()
        self._switched.clear()
        self._path = []

    def _record(
        self, level: LogLevel, source: str, message: str, details: Optional[str] = None
    ) -> None:
        publish_log(
            self.event_bus,
            ConsoleLog(level, self.scheduler.current_tick, source, message, details),
        )

    def _publish_logs(self, logs: List[ConsoleLog]) -> None:
        for log in logs:
            publish_log(self.event_bus, log)

    def _collect_log(self, log: ConsoleLog) -> None:
        self._logs.append(log)
        logger.log(_LOGGING_LEVELS[log.level], "%s", log)

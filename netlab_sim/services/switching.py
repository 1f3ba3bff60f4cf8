"""Layer-2 switching service.

Implements the forwarding decision of a learning switch for one received
frame: source learning, then broadcast/unknown-unicast flooding, filtering,
or forwarding out the single port the CAM table names.
"""

from dataclasses import dataclass, field
from typing import List

from netlab_sim.core.enums import LogLevel, SwitchAction
from netlab_sim.core.events import ConsoleLog
from netlab_sim.core.packet import Packet
from netlab_sim.core.topology import Device
from netlab_sim.services.base import ProtocolService
from netlab_sim.utils.ip import BROADCAST_MAC


@dataclass
class SwitchingDecision:
    """Forwarding decision for one frame.

    Attributes:
        action: forward, flood, filter or drop.
        out_ports: Interface ids the frame leaves through.
        explanation: Why the decision was taken.
        logs: Console lines produced.
    """

    action: SwitchAction
    out_ports: List[str] = field(default_factory=list)
    explanation: str = ""
    logs: List[ConsoleLog] = field(default_factory=list)


class SwitchingService(ProtocolService):
    """MAC-learning switch logic."""

    def process_frame(self, device: Device, packet: Packet, ingress_id: str) -> SwitchingDecision:
        """Decide where a received frame goes.

        Args:
            device: Switch-capable device holding the frame.
            packet: The received frame.
            ingress_id: Interface the frame arrived on.

        Returns:
            The SwitchingDecision. Flooding never includes the ingress port.
        """
        state = self.device_states.get_or_create(device.id, device.device_type)
        logs: List[ConsoleLog] = []

        src_mac = packet.layer2.src_mac
        if src_mac and src_mac != BROADCAST_MAC:
            state.cam_table.learn(src_mac, ingress_id, self.scheduler.current_tick)
            logs.append(
                self._log(
                    LogLevel.INFO,
                    device,
                    f"Switch: learned {src_mac} on port {self._port_name(device, ingress_id)}",
                )
            )

        dst_mac = packet.layer2.dst_mac.upper()
        if dst_mac == BROADCAST_MAC or packet.is_broadcast:
            ports = self._flood_ports(device, ingress_id)
            explanation = f"Broadcast frame from {src_mac}, flooding {len(ports)} port(s)"
            logs.append(
                self._log(
                    LogLevel.WARN,
                    device,
                    f"Switch: {explanation}",
                    f"Ports: {', '.join(self._port_name(device, p) for p in ports)}",
                )
            )
            self._announce(f"{device.label}: broadcast received, sending out every port")
            return SwitchingDecision(SwitchAction.FLOOD, ports, explanation, logs)

        entry = state.cam_table.lookup(dst_mac)
        if entry is not None:
            if entry.interface_id == ingress_id:
                explanation = f"Frame {src_mac} -> {dst_mac} filtered, destination is on the ingress port"
                logs.append(self._log(LogLevel.INFO, device, f"Switch: {explanation}"))
                return SwitchingDecision(SwitchAction.FILTER, [], explanation, logs)

            port = self._port_name(device, entry.interface_id)
            explanation = f"Frame {src_mac} -> {dst_mac} forwarded via {port}"
            logs.append(
                self._log(
                    LogLevel.INFO,
                    device,
                    f"Switch: {explanation}",
                    f"CAM table: {dst_mac} -> port {port}",
                )
            )
            return SwitchingDecision(SwitchAction.FORWARD, [entry.interface_id], explanation, logs)

        ports = self._flood_ports(device, ingress_id)
        explanation = f"Unknown unicast {dst_mac}, flooding {len(ports)} port(s)"
        logs.append(
            self._log(
                LogLevel.WARN,
                device,
                f"Switch: {explanation}",
                "MAC not in the CAM table",
            )
        )
        self._announce(f"{device.label}: unknown MAC, flooding to find {dst_mac}")
        return SwitchingDecision(SwitchAction.FLOOD, ports, explanation, logs)

    @staticmethod
    def _flood_ports(device: Device, ingress_id: str) -> List[str]:
        return [
            iface.id
            for iface in device.interfaces
            if iface.id != ingress_id and iface.admin_up and iface.connected_edge_id
        ]

    @staticmethod
    def _port_name(device: Device, interface_id: str) -> str:
        iface = device.interface(interface_id)
        return iface.short_name if iface is not None else interface_id

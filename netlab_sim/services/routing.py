"""Layer-3 routing service.

Maintains connected routes from interface addressing and takes the routing
decision for a datagram: local delivery, or outgoing interface plus next hop
chosen by longest-prefix match.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from netlab_sim.core.device_state import RouteEntry
from netlab_sim.core.enums import DropReason, LogLevel
from netlab_sim.core.events import ConsoleLog
from netlab_sim.core.packet import Packet
from netlab_sim.core.topology import Device, NetworkInterface, has_gateway
from netlab_sim.services.base import ProtocolService
from netlab_sim.utils.ip import ANY_IP, is_valid_ip, is_valid_mask, same_subnet


@dataclass
class RoutingDecision:
    """Routing decision for one datagram.

    Attributes:
        can_route: Whether the datagram can be delivered or forwarded.
        local: The datagram is addressed to this device.
        out_interface: Outgoing interface (None for local delivery).
        next_hop_ip: Address whose MAC the frame must carry.
        matched_route: Route selected by the lookup.
        fail_reason: Human readable failure reason.
        drop_reason: Drop classification for a failure.
        logs: Console lines produced.
    """

    can_route: bool
    local: bool = False
    out_interface: Optional[NetworkInterface] = None
    next_hop_ip: Optional[str] = None
    matched_route: Optional[RouteEntry] = None
    fail_reason: Optional[str] = None
    drop_reason: Optional[DropReason] = None
    logs: List[ConsoleLog] = field(default_factory=list)


class RoutingService(ProtocolService):
    """Connected-route maintenance and forwarding decisions."""

    def initialize_connected_routes(self, device: Device) -> None:
        """Rebuild the connected routes of a device.

        Static routes survive the rebuild. End hosts with a usable gateway get
        a synthesized default route.
        """
        if not self.device_states.is_l3_device(device.device_type):
            return

        table = self.device_states.get_or_create(device.id, device.device_type).routing_table
        static_routes = [r for r in table.static_routes() if not r.from_gateway]
        table.clear()

        for route in static_routes:
            table.add_static_route(
                route.network,
                route.mask,
                route.next_hop,
                route.out_interface or None,
                route.admin_distance,
            )

        # Cabled ports first so a device-level address maps to a usable port.
        for iface in sorted(device.interfaces, key=lambda i: not i.is_active):
            if not iface.admin_up:
                continue
            address, mask = device.address_on(iface)
            if not is_valid_ip(address) or not is_valid_mask(mask):
                continue
            table.add_connected_route(address, mask, iface.id)

        if self.device_states.is_end_host(device.device_type) and has_gateway(device):
            table.add_static_route(ANY_IP, ANY_IP, device.gateway, from_gateway=True)

    def route_packet(self, device: Device, packet: Packet) -> RoutingDecision:
        """Decide how ``device`` handles a datagram.

        Args:
            device: Device holding the datagram.
            packet: The datagram.

        Returns:
            A RoutingDecision. Failures carry a reason and never raise.
        """
        destination = packet.layer3.dst_ip

        if self.is_packet_for_me(device, destination):
            log = self._log(
                LogLevel.INFO,
                device,
                f"Routing: packet for {destination} is addressed to this device (local delivery)",
            )
            return RoutingDecision(True, local=True, logs=[log])

        if not self.device_states.is_l3_device(device.device_type):
            reason = f"{device.label} cannot route ({device.device_type.value} is not a Layer-3 device)"
            log = self._log(LogLevel.ERROR, device, f"Routing: {reason}")
            return RoutingDecision(
                False, fail_reason=reason, drop_reason=DropReason.NO_ROUTE, logs=[log]
            )

        table = self.device_states.get_or_create(device.id, device.device_type).routing_table
        route = table.lookup(destination)
        if route is None:
            reason = f"No route to host {destination}"
            log = self._log(
                LogLevel.ERROR,
                device,
                f"Routing: no route to {destination}, destination unreachable",
                "Check 'show ip route'",
            )
            self._announce(f"{device.label}: no route to {destination}, packet discarded", "assertive")
            return RoutingDecision(
                False, fail_reason=reason, drop_reason=DropReason.NO_ROUTE, logs=[log]
            )

        out_interface = self._find_out_interface(device, route, destination)
        if out_interface is None:
            reason = f"No outgoing interface available for {route.network}/{route.prefix_length}"
            log = self._log(LogLevel.ERROR, device, f"Routing: {reason}")
            return RoutingDecision(
                False,
                matched_route=route,
                fail_reason=reason,
                drop_reason=DropReason.NO_INTERFACE,
                logs=[log],
            )

        if not out_interface.admin_up:
            reason = f"Interface {out_interface.short_name} is shutdown"
            log = self._log(
                LogLevel.ERROR,
                device,
                f"Routing: interface {out_interface.short_name} is administratively down",
            )
            return RoutingDecision(
                False,
                out_interface=out_interface,
                matched_route=route,
                fail_reason=reason,
                drop_reason=DropReason.PORT_DOWN,
                logs=[log],
            )

        next_hop = route.next_hop or destination
        log = self._log(
            LogLevel.INFO,
            device,
            f"Routing: [{route.route_type.code}] {route.network}/{route.prefix_length} -> "
            f"{route.next_hop or 'directly connected'} via {out_interface.short_name}",
            f"Next hop: {next_hop}",
        )
        return RoutingDecision(
            True,
            out_interface=out_interface,
            next_hop_ip=next_hop,
            matched_route=route,
            logs=[log],
        )

    def is_packet_for_me(self, device: Device, ip: str) -> bool:
        return device.owns_address(ip)

    @staticmethod
    def _find_out_interface(
        device: Device, route: RouteEntry, destination: str
    ) -> Optional[NetworkInterface]:
        if route.out_interface:
            iface = device.interface(route.out_interface)
            if iface is not None:
                return iface

        target = route.next_hop or destination
        for iface in device.active_interfaces():
            address, mask = device.address_on(iface)
            if same_subnet(address, mask, target, mask):
                return iface

        active = device.active_interfaces()
        return active[0] if active else None

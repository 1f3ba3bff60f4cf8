"""ICMP service.

Builds echo requests and replies, interprets replies, and builds the two
error messages a routing device may send back to a sender: Destination
Unreachable and Time Exceeded.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from netlab_sim.core.enums import LogLevel
from netlab_sim.core.events import ConsoleLog
from netlab_sim.core.packet import Packet, PacketFactory
from netlab_sim.core.topology import Device, NetworkInterface
from netlab_sim.services.base import ProtocolService
from netlab_sim.utils.ip import is_valid_ip, is_valid_mask, same_subnet


@dataclass
class IcmpResult:
    """Outcome of an ICMP operation.

    Attributes:
        success: Whether the operation succeeded.
        packets: Packets produced.
        logs: Console lines produced.
        round_trip_ticks: Ticks between request creation and reply receipt.
    """

    success: bool
    packets: List[Packet] = field(default_factory=list)
    logs: List[ConsoleLog] = field(default_factory=list)
    round_trip_ticks: Optional[int] = None


class IcmpService(ProtocolService):
    """Builds and interprets ICMP messages."""

    def __init__(
        self,
        event_bus,
        device_states,
        scheduler,
        factory: PacketFactory,
        default_ttl: int = 64,
    ):
        super().__init__(event_bus, device_states, scheduler)
        self.factory = factory
        self.default_ttl = default_ttl

    def create_ping(
        self,
        source: Device,
        target_ip: str,
        target_device_id: str,
        dst_mac: str,
        out_interface: NetworkInterface,
        ttl: Optional[int] = None,
    ) -> IcmpResult:
        """Create an echo request.

        Args:
            source: Device sending the ping.
            target_ip: Destination address.
            target_device_id: Destination device.
            dst_mac: Layer-2 destination (rewritten hop by hop).
            out_interface: Interface the request leaves through.
            ttl: Initial TTL, defaults to the configured TTL.

        Returns:
            An IcmpResult holding the request.
        """
        ttl = self.default_ttl if ttl is None else ttl
        src_ip, _ = source.address_on(out_interface)
        src_mac = source.mac_on(out_interface)

        if not is_valid_ip(src_ip):
            log = self._log(
                LogLevel.ERROR, source, "ICMP: outgoing interface has no IP address configured"
            )
            return IcmpResult(False, logs=[log])

        request = self.factory.icmp_echo_request(
            src_mac,
            dst_mac,
            src_ip,
            target_ip,
            source.id,
            target_device_id,
            self.scheduler.current_tick,
            ttl=ttl,
        )
        self._created(request)
        self._announce(f"{source.label} sent an ICMP echo request to {target_ip}")
        log = self._log(
            LogLevel.INFO,
            source,
            f"ICMP: echo request to {target_ip} (seq={request.icmp.sequence})",
            f"src={src_ip} dst={target_ip} ttl={ttl}",
        )
        return IcmpResult(True, [request], [log])

    def handle_echo_request(
        self, device: Device, packet: Packet, ingress: NetworkInterface
    ) -> IcmpResult:
        """Answer an echo request addressed to ``device``.

        The reply is sourced from the pinged address when the device owns it,
        otherwise from the ingress interface.
        """
        my_ip, _ = device.address_on(ingress)
        if device.owns_address(packet.layer3.dst_ip):
            my_ip = packet.layer3.dst_ip
        my_mac = device.mac_on(ingress)
        if not is_valid_ip(my_ip):
            log = self._log(
                LogLevel.ERROR, device, "ICMP: cannot reply, no IP address configured"
            )
            return IcmpResult(False, logs=[log])

        reply = self.factory.icmp_echo_reply(
            packet,
            my_mac,
            my_ip,
            device.id,
            packet.layer2.src_mac,
            self.scheduler.current_tick,
            ttl=self.default_ttl,
        )
        self._created(reply)
        self._announce(f"{device.label} answered the echo request from {packet.layer3.src_ip}")
        log = self._log(
            LogLevel.SUCCESS,
            device,
            f"ICMP: echo reply to {packet.layer3.src_ip} (seq={packet.icmp.sequence})",
            f"src={my_ip} dst={packet.layer3.src_ip} ttl={self.default_ttl}",
        )
        return IcmpResult(True, [reply], [log])

    def handle_echo_reply(self, device: Device, packet: Packet) -> IcmpResult:
        """Record receipt of an echo reply by the original sender."""
        rtt = self.scheduler.current_tick - packet.created_at
        log = self._log(
            LogLevel.SUCCESS,
            device,
            f"ICMP: reply from {packet.layer3.src_ip} seq={packet.icmp.sequence} "
            f"ttl={packet.layer3.ttl} time={rtt} ticks",
        )
        self._announce(
            f"{device.label} received the ping reply from {packet.layer3.src_ip}", "assertive"
        )
        return IcmpResult(True, logs=[log], round_trip_ticks=rtt)

    def generate_unreachable(
        self, device: Device, original: Packet, out_interface: NetworkInterface, code: int = 1
    ) -> IcmpResult:
        """Build a Destination Unreachable addressed to the original sender."""
        my_ip, _ = device.address_on(out_interface)
        if not is_valid_ip(my_ip):
            return IcmpResult(False)

        error = self.factory.icmp_unreachable(
            original,
            device.mac_on(out_interface),
            my_ip,
            device.id,
            self.scheduler.current_tick,
            code=code,
            ttl=self.default_ttl,
        )
        self._created(error)
        self._announce(
            f"{device.label}: destination {original.layer3.dst_ip} unreachable", "assertive"
        )
        log = self._log(
            LogLevel.ERROR,
            device,
            f"ICMP: destination unreachable sent to {original.layer3.src_ip}",
            f"No route to {original.layer3.dst_ip}"
            if code == 0
            else f"Host {original.layer3.dst_ip} did not answer ARP",
        )
        return IcmpResult(True, [error], [log])

    def generate_ttl_exceeded(
        self, device: Device, original: Packet, out_interface: NetworkInterface
    ) -> IcmpResult:
        """Build a Time Exceeded addressed to the original sender."""
        my_ip, _ = device.address_on(out_interface)
        if not is_valid_ip(my_ip):
            return IcmpResult(False)

        error = self.factory.icmp_ttl_exceeded(
            original,
            device.mac_on(out_interface),
            my_ip,
            device.id,
            self.scheduler.current_tick,
            ttl=self.default_ttl,
        )
        self._created(error)
        self._announce(
            f"{device.label}: TTL expired for a packet from {original.layer3.src_ip}", "assertive"
        )
        log = self._log(
            LogLevel.ERROR,
            device,
            f"ICMP: TTL exceeded, packet from {original.layer3.src_ip} discarded",
            f"TTL expired while forwarding to {original.layer3.dst_ip}",
        )
        return IcmpResult(True, [error], [log])

    def needs_gateway(
        self, source: Device, destination_ip: str, out_interface: NetworkInterface
    ) -> bool:
        """Whether ``destination_ip`` lies outside the egress interface's subnet.

        A source without a usable address/mask always needs the gateway.
        """
        src_ip, src_mask = source.address_on(out_interface)
        if not is_valid_ip(src_ip) or not is_valid_mask(src_mask):
            return True
        return not same_subnet(src_ip, src_mask, destination_ip, src_mask)

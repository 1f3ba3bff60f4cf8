"""Address Resolution Protocol service.

Resolution is cache-first. A miss produces one broadcast request that the
caller forwards into the topology; the owner of the address answers with a
unicast reply. Resuming whatever waited on the resolution is left to the
orchestrator.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from netlab_sim.core.enums import LogLevel
from netlab_sim.core.events import ConsoleLog
from netlab_sim.core.packet import Packet, PacketFactory
from netlab_sim.core.topology import Device, NetworkInterface
from netlab_sim.services.base import ProtocolService
from netlab_sim.utils.ip import is_valid_ip


@dataclass
class ArpResolution:
    """Outcome of a resolution attempt.

    Attributes:
        resolved: Whether the address was found in the cache.
        mac: Hardware address on a hit.
        packets: Generated request packets on a miss.
        logs: Console lines produced.
    """

    resolved: bool
    mac: Optional[str] = None
    packets: List[Packet] = field(default_factory=list)
    logs: List[ConsoleLog] = field(default_factory=list)


class ArpService(ProtocolService):
    """Resolves network addresses to hardware addresses."""

    def __init__(self, event_bus, device_states, scheduler, factory: PacketFactory):
        super().__init__(event_bus, device_states, scheduler)
        self.factory = factory

    def resolve_mac(
        self, device: Device, target_ip: str, out_interface: NetworkInterface
    ) -> ArpResolution:
        """Look up ``target_ip`` in the device's cache, asking the segment on a miss.

        Args:
            device: Device that needs the hardware address.
            target_ip: Address to resolve (destination or next hop).
            out_interface: Interface the request would leave through.

        Returns:
            An ArpResolution. On a miss it carries exactly one broadcast
            request unless the interface has no address to ask from.
        """
        state = self.device_states.get_or_create(device.id, device.device_type)

        cached = state.arp_table.lookup(target_ip)
        if cached is not None:
            log = self._log(
                LogLevel.INFO, device, f"ARP: cache hit {target_ip} -> {cached.mac_address}"
            )
            return ArpResolution(True, cached.mac_address, logs=[log])

        src_ip, _ = device.address_on(out_interface)
        src_mac = device.mac_on(out_interface)
        if not is_valid_ip(src_ip):
            log = self._log(
                LogLevel.ERROR,
                device,
                f"ARP: interface {out_interface.short_name} has no IP address configured",
            )
            return ArpResolution(False, logs=[log])

        request = self.factory.arp_request(
            src_mac, src_ip, target_ip, device.id, self.scheduler.current_tick
        )
        self._created(request)
        self._announce(f"{device.label} sent a broadcast ARP request: who has {target_ip}?")
        log = self._log(
            LogLevel.WARN,
            device,
            f"ARP: cache miss for {target_ip}, sending broadcast request",
            f"Who has {target_ip}? Tell {src_ip} ({src_mac})",
        )
        return ArpResolution(False, packets=[request], logs=[log])

    def handle_request(
        self, device: Device, packet: Packet, ingress: NetworkInterface
    ) -> List[Packet]:
        """Process a received ARP request.

        The sender's pair is always learned. A reply is produced only when
        the device owns the requested address on the ingress interface.

        Returns:
            A list holding the unicast reply, or an empty list.
        """
        arp = packet.arp
        state = self.device_states.get_or_create(device.id, device.device_type)
        tick = self.scheduler.current_tick

        state.arp_table.add(arp.sender_ip, arp.sender_mac, ingress.id, tick)
        self._emit(
            self._log(
                LogLevel.INFO,
                device,
                f"ARP: learned {arp.sender_ip} -> {arp.sender_mac} from request",
            )
        )

        my_ip, _ = device.address_on(ingress)
        if not my_ip or my_ip != arp.target_ip:
            return []

        my_mac = device.mac_on(ingress)
        reply = self.factory.arp_reply(
            my_mac,
            my_ip,
            arp.sender_mac,
            arp.sender_ip,
            device.id,
            packet.source_device_id,
            tick,
        )
        self._created(reply)
        self._emit(
            self._log(
                LogLevel.SUCCESS,
                device,
                f"ARP: reply sent, {my_ip} is-at {my_mac}",
                f"Answering {arp.sender_ip} ({arp.sender_mac})",
            )
        )
        self._announce(f"{device.label} answered ARP: {my_ip} is at {my_mac}")
        return [reply]

    def handle_reply(self, device: Device, packet: Packet, ingress: NetworkInterface) -> None:
        """Learn the sender of a received ARP reply."""
        arp = packet.arp
        state = self.device_states.get_or_create(device.id, device.device_type)
        state.arp_table.add(arp.sender_ip, arp.sender_mac, ingress.id, self.scheduler.current_tick)
        self._emit(
            self._log(
                LogLevel.SUCCESS,
                device,
                f"ARP: table updated, {arp.sender_ip} -> {arp.sender_mac}",
            )
        )
        self._announce(f"{device.label} learned the MAC of {arp.sender_ip}: {arp.sender_mac}")

    def needs_resolution(self, device: Device, ip: str) -> bool:
        state = self.device_states.get(device.id)
        if state is None:
            return True
        return state.arp_table.lookup(ip) is None

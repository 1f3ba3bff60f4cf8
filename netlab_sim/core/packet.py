"""Packet model for network simulation.

This module defines the immutable Packet value, its Layer-2/Layer-3 headers,
the two payload variants, and the PacketFactory that builds every protocol
packet the simulator emits.
"""

from dataclasses import dataclass, replace
from typing import Optional, Union

from netlab_sim.core.enums import (
    ArpOperation,
    IcmpType,
    PacketKind,
    Protocol,
)
from netlab_sim.utils.ip import BROADCAST_MAC, ZERO_MAC

ETHERTYPE_ARP = "0x0806"
ETHERTYPE_IPV4 = "0x0800"


@dataclass(frozen=True)
class L2Header:
    """Ethernet header.

    Attributes:
        src_mac: Source hardware address.
        dst_mac: Destination hardware address.
        ether_type: 0x0806 for ARP, 0x0800 for IPv4.
    """

    src_mac: str
    dst_mac: str
    ether_type: str


@dataclass(frozen=True)
class L3Header:
    """IPv4 header (or the ARP addressing fields for ARP frames).

    Attributes:
        src_ip: Source network address.
        dst_ip: Destination network address.
        ttl: Remaining hop budget.
        protocol: Protocol carried.
    """

    src_ip: str
    dst_ip: str
    ttl: int
    protocol: Protocol


@dataclass(frozen=True)
class ArpPayload:
    operation: ArpOperation
    sender_mac: str
    sender_ip: str
    target_mac: str
    target_ip: str


@dataclass(frozen=True)
class IcmpPayload:
    icmp_type: IcmpType
    code: int
    sequence: int
    identifier: int
    data: Optional[str] = None


Payload = Union[ArpPayload, IcmpPayload]


@dataclass(frozen=True)
class Packet:
    """Represents a simulated network packet.

    Packets are never mutated in place. Every forwarding step produces a
    new value through one of the ``rewrite``/``hopped`` helpers.

    Attributes:
        id: Unique identifier for the packet.
        protocol: Protocol tag that discriminates the payload.
        kind: Packet subtype.
        layer2: Ethernet header.
        layer3: IP header.
        payload: ARP or ICMP payload.
        source_device_id: Device where the packet was created.
        destination_device_id: Final destination device ("" for broadcast).
        current_device_id: Device currently holding the packet.
        ingress_interface_id: Interface the packet last arrived on.
        created_at: Tick at which the packet was created.
        hop_count: Number of hops taken.
        is_broadcast: Whether the frame is a broadcast.
        flood_id: Id of the frame a flooded copy was cloned from.
    """

    id: str
    protocol: Protocol
    kind: PacketKind
    layer2: L2Header
    layer3: L3Header
    payload: Payload
    source_device_id: str
    destination_device_id: str
    current_device_id: str
    ingress_interface_id: Optional[str] = None
    created_at: int = 0
    hop_count: int = 0
    is_broadcast: bool = False
    flood_id: Optional[str] = None

    @property
    def arp(self) -> ArpPayload:
        """Return the ARP payload.

        Raises:
            TypeError: If the packet does not carry ARP.
        """
        if self.protocol is Protocol.ARP and isinstance(self.payload, ArpPayload):
            return self.payload
        raise TypeError(f"Packet {self.id} is not an ARP packet")

    @property
    def icmp(self) -> IcmpPayload:
        """Return the ICMP payload.

        Raises:
            TypeError: If the packet does not carry ICMP.
        """
        if self.protocol is Protocol.ICMP and isinstance(self.payload, IcmpPayload):
            return self.payload
        raise TypeError(f"Packet {self.id} is not an ICMP packet")

    @property
    def is_error(self) -> bool:
        return self.kind in (PacketKind.ICMP_UNREACHABLE, PacketKind.ICMP_TTL_EXCEEDED)

    def rewrite_l2(
        self, src_mac: Optional[str] = None, dst_mac: Optional[str] = None
    ) -> "Packet":
        """Return a copy with a rewritten Ethernet header."""
        return replace(
            self,
            layer2=replace(
                self.layer2,
                src_mac=src_mac if src_mac is not None else self.layer2.src_mac,
                dst_mac=dst_mac if dst_mac is not None else self.layer2.dst_mac,
            ),
        )

    def decrement_ttl(self) -> "Packet":
        """Return a copy with TTL reduced by one and the hop counter bumped."""
        return replace(
            self,
            layer3=replace(self.layer3, ttl=self.layer3.ttl - 1),
            hop_count=self.hop_count + 1,
        )

    def hopped(self, device_id: str) -> "Packet":
        """Return a copy that has left ``device_id`` on one more hop."""
        return replace(self, current_device_id=device_id, hop_count=self.hop_count + 1)

    def arrived(self, device_id: str, interface_id: Optional[str]) -> "Packet":
        return replace(
            self, current_device_id=device_id, ingress_interface_id=interface_id
        )

    def clone_for_port(self, device_id: str, port_id: str) -> "Packet":
        """Return a per-port copy used when a switch floods a frame."""
        return replace(
            self.hopped(device_id),
            id=f"{self.id}-{port_id}",
            flood_id=self.flood_id or self.id,
        )


class PacketFactory:
    """Builds protocol packets with unique identifiers.

    The factory is owned by one orchestrator so independent runs never share
    counters.
    """

    def __init__(self, ping_data: str = "netlab_sim ping") -> None:
        self.ping_data = ping_data
        self._packet_counter = 0
        self._icmp_sequence = 0
        self._icmp_identifier = 1

    def reset(self) -> None:
        """Reset packet and ICMP counters (start of a new run)."""
        self._packet_counter = 0
        self._icmp_sequence = 0
        self._icmp_identifier += 1

    @property
    def created(self) -> int:
        return self._packet_counter

    def _next_id(self, kind: PacketKind) -> str:
        self._packet_counter += 1
        return f"pkt-{kind.value}-{self._packet_counter}"

    def arp_request(
        self,
        sender_mac: str,
        sender_ip: str,
        target_ip: str,
        source_device_id: str,
        tick: int,
    ) -> Packet:
        """Create a broadcast ARP request ("who has target_ip?").

        Args:
            sender_mac: Hardware address of the asking interface.
            sender_ip: Network address of the asking interface.
            target_ip: Address to resolve.
            source_device_id: Device emitting the request.
            tick: Current scheduler tick.

        Returns:
            The ARP request packet.
        """
        kind = PacketKind.ARP_REQUEST
        return Packet(
            id=self._next_id(kind),
            protocol=Protocol.ARP,
            kind=kind,
            layer2=L2Header(sender_mac, BROADCAST_MAC, ETHERTYPE_ARP),
            layer3=L3Header(sender_ip, target_ip, 1, Protocol.ARP),
            payload=ArpPayload(
                ArpOperation.REQUEST, sender_mac, sender_ip, ZERO_MAC, target_ip
            ),
            source_device_id=source_device_id,
            destination_device_id="",
            current_device_id=source_device_id,
            created_at=tick,
            is_broadcast=True,
        )

    def arp_reply(
        self,
        sender_mac: str,
        sender_ip: str,
        target_mac: str,
        target_ip: str,
        source_device_id: str,
        destination_device_id: str,
        tick: int,
    ) -> Packet:
        """Create a unicast ARP reply ("sender_ip is-at sender_mac")."""
        kind = PacketKind.ARP_REPLY
        return Packet(
            id=self._next_id(kind),
            protocol=Protocol.ARP,
            kind=kind,
            layer2=L2Header(sender_mac, target_mac, ETHERTYPE_ARP),
            layer3=L3Header(sender_ip, target_ip, 1, Protocol.ARP),
            payload=ArpPayload(
                ArpOperation.REPLY, sender_mac, sender_ip, target_mac, target_ip
            ),
            source_device_id=source_device_id,
            destination_device_id=destination_device_id,
            current_device_id=source_device_id,
            created_at=tick,
        )

    def icmp_echo_request(
        self,
        src_mac: str,
        dst_mac: str,
        src_ip: str,
        dst_ip: str,
        source_device_id: str,
        destination_device_id: str,
        tick: int,
        ttl: int = 64,
    ) -> Packet:
        kind = PacketKind.ICMP_ECHO_REQUEST
        self._icmp_sequence += 1
        return Packet(
            id=self._next_id(kind),
            protocol=Protocol.ICMP,
            kind=kind,
            layer2=L2Header(src_mac, dst_mac, ETHERTYPE_IPV4),
            layer3=L3Header(src_ip, dst_ip, ttl, Protocol.ICMP),
            payload=IcmpPayload(
                IcmpType.ECHO_REQUEST,
                0,
                self._icmp_sequence,
                self._icmp_identifier,
                self.ping_data,
            ),
            source_device_id=source_device_id,
            destination_device_id=destination_device_id,
            current_device_id=source_device_id,
            created_at=tick,
        )

    def icmp_echo_reply(
        self,
        request: Packet,
        replier_mac: str,
        replier_ip: str,
        replier_device_id: str,
        dst_mac: str,
        tick: int,
        ttl: int = 64,
    ) -> Packet:
        """Create the echo reply for ``request``, mirroring its sequence."""
        kind = PacketKind.ICMP_ECHO_REPLY
        echo = request.icmp
        return Packet(
            id=self._next_id(kind),
            protocol=Protocol.ICMP,
            kind=kind,
            layer2=L2Header(replier_mac, dst_mac, ETHERTYPE_IPV4),
            layer3=L3Header(replier_ip, request.layer3.src_ip, ttl, Protocol.ICMP),
            payload=IcmpPayload(
                IcmpType.ECHO_REPLY, 0, echo.sequence, echo.identifier, echo.data
            ),
            source_device_id=replier_device_id,
            destination_device_id=request.source_device_id,
            current_device_id=replier_device_id,
            created_at=tick,
        )

    def icmp_unreachable(
        self,
        original: Packet,
        sender_mac: str,
        sender_ip: str,
        sender_device_id: str,
        tick: int,
        code: int = 1,
        ttl: int = 64,
    ) -> Packet:
        return self._icmp_error(
            PacketKind.ICMP_UNREACHABLE,
            IcmpType.UNREACHABLE,
            code,
            original,
            sender_mac,
            sender_ip,
            sender_device_id,
            tick,
            ttl,
        )

    def icmp_ttl_exceeded(
        self,
        original: Packet,
        sender_mac: str,
        sender_ip: str,
        sender_device_id: str,
        tick: int,
        ttl: int = 64,
    ) -> Packet:
        return self._icmp_error(
            PacketKind.ICMP_TTL_EXCEEDED,
            IcmpType.TTL_EXCEEDED,
            0,
            original,
            sender_mac,
            sender_ip,
            sender_device_id,
            tick,
            ttl,
        )

    def _icmp_error(
        self,
        kind: PacketKind,
        icmp_type: IcmpType,
        code: int,
        original: Packet,
        sender_mac: str,
        sender_ip: str,
        sender_device_id: str,
        tick: int,
        ttl: int,
    ) -> Packet:
        # Errors travel back to whoever sent the original datagram.
        return Packet(
            id=self._next_id(kind),
            protocol=Protocol.ICMP,
            kind=kind,
            layer2=L2Header(sender_mac, original.layer2.src_mac, ETHERTYPE_IPV4),
            layer3=L3Header(sender_ip, original.layer3.src_ip, ttl, Protocol.ICMP),
            payload=IcmpPayload(icmp_type, code, 0, 0),
            source_device_id=sender_device_id,
            destination_device_id=original.source_device_id,
            current_device_id=sender_device_id,
            created_at=tick,
        )

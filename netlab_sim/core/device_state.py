"""Per-device protocol state.

This module defines the three tables every device may hold (ARP cache, CAM
table, routing table), the virtual running/startup configuration, and the
DeviceStateManager that owns them all, keyed by device id.
"""

import copy
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

from netlab_sim.config import SimulationConfig
from netlab_sim.core.enums import (
    DeviceType,
    RouteType,
    SimEvent,
    TableAction,
    TableType,
)
from netlab_sim.core.event_bus import EventBus
from netlab_sim.core.events import TableUpdateEvent
from netlab_sim.core.topology import NetworkInterface
from netlab_sim.utils.ip import (
    ANY_IP,
    in_network,
    is_valid_ip,
    mask_to_prefix,
    network_address,
)

# Device types that hold an ARP cache and a routing table.
L3_DEVICE_TYPES = frozenset(
    {
        DeviceType.ROUTER,
        DeviceType.SWITCH_L3,
        DeviceType.FIREWALL,
        DeviceType.ISP,
        DeviceType.CLOUD,
        DeviceType.PC,
        DeviceType.LAPTOP,
        DeviceType.SERVER,
        DeviceType.IP_PHONE,
        DeviceType.PRINTER,
        DeviceType.SMART_TV,
        DeviceType.SMART_SPEAKER,
        DeviceType.SMART_LIGHT,
        DeviceType.SECURITY_CAMERA,
        DeviceType.ROBOT_VACUUM,
        DeviceType.SMART_THERMOSTAT,
        DeviceType.GAME_CONSOLE,
        DeviceType.STREAMING_BOX,
    }
)

# Device types that switch frames and keep a CAM table.
SWITCH_DEVICE_TYPES = frozenset(
    {DeviceType.SWITCH_L2, DeviceType.SWITCH_L3, DeviceType.ACCESS_POINT}
)

# Layer-3 devices that forward datagrams not addressed to themselves.
ROUTING_DEVICE_TYPES = frozenset(
    {DeviceType.ROUTER, DeviceType.SWITCH_L3, DeviceType.FIREWALL, DeviceType.ISP}
)

# Hosts that get a default route synthesized from their gateway.
END_HOST_TYPES = L3_DEVICE_TYPES - ROUTING_DEVICE_TYPES


@dataclass(frozen=True)
class ArpEntry:
    """ARP cache entry.

    Attributes:
        ip_address: Resolved network address.
        mac_address: Hardware address it maps to.
        interface_id: Interface it was learned on.
        learned_at: Tick it was learned.
        timeout: Ticks before it expires.
        is_static: Static entries never expire.
    """

    ip_address: str
    mac_address: str
    interface_id: str
    learned_at: int
    timeout: int
    is_static: bool = False


@dataclass(frozen=True)
class CamEntry:
    mac_address: str
    interface_id: str
    learned_at: int
    aging_time: int


@dataclass(frozen=True)
class RouteEntry:
    """Routing table entry.

    Attributes:
        network: Destination network (normalized).
        mask: Subnet mask.
        prefix_length: CIDR prefix, used for ordering.
        next_hop: Next-hop address, None for connected routes.
        out_interface: Outgoing interface id ("" to resolve from next hop).
        route_type: Connected or static.
        admin_distance: Administrative distance.
        metric: Route metric.
        from_gateway: Default route synthesized from a host gateway.
    """

    network: str
    mask: str
    prefix_length: int
    next_hop: Optional[str]
    out_interface: str
    route_type: RouteType
    admin_distance: int
    metric: int = 0
    from_gateway: bool = False

    def __str__(self) -> str:
        via = self.next_hop or "directly connected"
        text = f"{self.route_type.code} {self.network}/{self.prefix_length} [{self.admin_distance}/{self.metric}] via {via}"
        if self.out_interface:
            text += f", {self.out_interface}"
        return text


class ArpTable:
    """Address-resolution cache for one device."""

    def __init__(self, device_id: str, event_bus: EventBus, timeout: int = 300):
        self.device_id = device_id
        self.event_bus = event_bus
        self.timeout = timeout
        self._entries: Dict[str, ArpEntry] = {}

    def lookup(self, ip: str) -> Optional[ArpEntry]:
        return self._entries.get(ip)

    def add(
        self,
        ip: str,
        mac: str,
        interface_id: str,
        tick: int,
        is_static: bool = False,
    ) -> ArpEntry:
        """Add or refresh an entry.

        Args:
            ip: Network address.
            mac: Hardware address.
            interface_id: Interface the pair was learned on.
            tick: Current tick.
            is_static: Whether the entry is exempt from aging.

        Returns:
            The stored entry.
        """
        existing = self._entries.get(ip)
        entry = ArpEntry(ip, mac.upper(), interface_id, tick, self.timeout, is_static)
        self._entries[ip] = entry
        if existing is None:
            self._notify(TableAction.ADD, entry, f"ARP: learned {ip} -> {entry.mac_address} on {interface_id}")
        else:
            self._notify(TableAction.UPDATE, entry, f"ARP: refreshed {ip} -> {entry.mac_address}")
        return entry

    def remove(self, ip: str) -> bool:
        entry = self._entries.pop(ip, None)
        if entry is None:
            return False
        self._notify(TableAction.REMOVE, entry, f"ARP: removed {ip}")
        return True

    def age(self, tick: int) -> List[ArpEntry]:
        """Evict dynamic entries older than their timeout.

        Returns:
            The evicted entries.
        """
        expired = [
            entry
            for entry in self._entries.values()
            if not entry.is_static and tick - entry.learned_at > entry.timeout
        ]
        for entry in expired:
            del self._entries[entry.ip_address]
            self._notify(
                TableAction.TIMEOUT,
                entry,
                f"ARP: {entry.ip_address} expired after {entry.timeout} ticks",
            )
        return expired

    def prune_interfaces(self, interface_ids: Iterable[str]) -> List[ArpEntry]:
        """Drop entries learned on interfaces that no longer exist."""
        valid = set(interface_ids)
        stale = [e for e in self._entries.values() if e.interface_id not in valid]
        for entry in stale:
            self.remove(entry.ip_address)
        return stale

    def entries(self) -> List[ArpEntry]:
        return list(self._entries.values())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _notify(self, action: TableAction, entry: ArpEntry, explanation: str) -> None:
        self.event_bus.publish(
            SimEvent.TABLE_ARP_UPDATE,
            TableUpdateEvent(self.device_id, TableType.ARP, action, entry, explanation),
        )


class CamTable:
    """MAC forwarding table of a switch."""

    def __init__(self, device_id: str, event_bus: EventBus, aging_time: int = 300):
        self.device_id = device_id
        self.event_bus = event_bus
        self.aging_time = aging_time
        self._entries: Dict[str, CamEntry] = {}

    def lookup(self, mac: str) -> Optional[CamEntry]:
        return self._entries.get(mac.upper())

    def learn(self, mac: str, interface_id: str, tick: int) -> CamEntry:
        """Record ``mac`` as reachable through ``interface_id`` (source learning).

        An event is published only when the MAC is new or has moved port.
        """
        mac = mac.upper()
        existing = self._entries.get(mac)
        entry = CamEntry(mac, interface_id, tick, self.aging_time)
        self._entries[mac] = entry
        if existing is None:
            self._notify(TableAction.ADD, entry, f"CAM: learned {mac} on port {interface_id}")
        elif existing.interface_id != interface_id:
            self._notify(
                TableAction.UPDATE,
                entry,
                f"CAM: {mac} moved from port {existing.interface_id} to {interface_id}",
            )
        return entry

    def age(self, tick: int) -> List[CamEntry]:
        expired = [e for e in self._entries.values() if tick - e.learned_at > e.aging_time]
        for entry in expired:
            del self._entries[entry.mac_address]
            self._notify(
                TableAction.TIMEOUT,
                entry,
                f"CAM: {entry.mac_address} aged out after {entry.aging_time} ticks",
            )
        return expired

    def prune_interfaces(self, interface_ids: Iterable[str]) -> List[CamEntry]:
        valid = set(interface_ids)
        stale = [e for e in self._entries.values() if e.interface_id not in valid]
        for entry in stale:
            del self._entries[entry.mac_address]
            self._notify(TableAction.REMOVE, entry, f"CAM: removed {entry.mac_address}")
        return stale

    def entries(self) -> List[CamEntry]:
        return list(self._entries.values())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _notify(self, action: TableAction, entry: CamEntry, explanation: str) -> None:
        self.event_bus.publish(
            SimEvent.TABLE_CAM_UPDATE,
            TableUpdateEvent(self.device_id, TableType.CAM, action, entry, explanation),
        )


class RoutingTable:
    """Routing table with longest-prefix-match lookup.

    Routes are kept sorted longest prefix first, then lowest administrative
    distance.
    """

    def __init__(self, device_id: str, event_bus: EventBus):
        self.device_id = device_id
        self.event_bus = event_bus
        self._routes: List[RouteEntry] = []

    def lookup(self, destination: str) -> Optional[RouteEntry]:
        """Find the most specific route for a destination.

        Args:
            destination: Destination address.

        Returns:
            The matching route with the longest prefix (lowest administrative
            distance on ties), or None.
        """
        if not is_valid_ip(destination):
            return None
        best: Optional[RouteEntry] = None
        for route in self._routes:
            if not in_network(destination, route.network, route.mask):
                continue
            if best is None or (route.prefix_length, -route.admin_distance) > (
                best.prefix_length,
                -best.admin_distance,
            ):
                best = route
        return best

    def add_connected_route(self, network: str, mask: str, out_interface: str) -> Optional[RouteEntry]:
        """Add a directly connected route.

        Returns:
            The new entry, or None if the network/mask pair is already present.
        """
        normalized = network_address(network, mask)
        for route in self._routes:
            if (
                route.route_type is RouteType.CONNECTED
                and route.network == normalized
                and route.mask == mask
            ):
                return None
        entry = RouteEntry(
            network=normalized,
            mask=mask,
            prefix_length=mask_to_prefix(mask),
            next_hop=None,
            out_interface=out_interface,
            route_type=RouteType.CONNECTED,
            admin_distance=0,
        )
        self._insert(entry)
        self._notify(
            TableAction.ADD,
            entry,
            f"Routing: connected route {normalized}/{entry.prefix_length} via {out_interface}",
        )
        return entry

    def add_static_route(
        self,
        network: str,
        mask: str,
        next_hop: str,
        out_interface: Optional[str] = None,
        admin_distance: int = 1,
        from_gateway: bool = False,
    ) -> Optional[RouteEntry]:
        """Add a static route.

        Returns:
            The new entry, or None if an identical static route exists.
        """
        normalized = network_address(network, mask)
        for route in self._routes:
            if (
                route.route_type is RouteType.STATIC
                and route.network == normalized
                and route.mask == mask
                and route.next_hop == next_hop
            ):
                return None
        entry = RouteEntry(
            network=normalized,
            mask=mask,
            prefix_length=mask_to_prefix(mask),
            next_hop=next_hop,
            out_interface=out_interface or "",
            route_type=RouteType.STATIC,
            admin_distance=admin_distance,
            from_gateway=from_gateway,
        )
        self._insert(entry)
        self._notify(
            TableAction.ADD,
            entry,
            f"Routing: static route {normalized}/{entry.prefix_length} via {next_hop}",
        )
        return entry

    def remove_route(self, network: str, mask: str, next_hop: Optional[str] = None) -> bool:
        normalized = network_address(network, mask)
        for index, route in enumerate(self._routes):
            if (
                route.network == normalized
                and route.mask == mask
                and (next_hop is None or route.next_hop == next_hop)
            ):
                del self._routes[index]
                self._notify(
                    TableAction.REMOVE,
                    route,
                    f"Routing: removed {route.network}/{route.prefix_length}",
                )
                return True
        return False

    def static_routes(self) -> List[RouteEntry]:
        return [r for r in self._routes if r.route_type is RouteType.STATIC]

    def has_default_route(self) -> bool:
        return any(r.network == ANY_IP and r.mask == ANY_IP for r in self._routes)

    def entries(self) -> List[RouteEntry]:
        return list(self._routes)

    def clear(self) -> None:
        self._routes.clear()

    def __len__(self) -> int:
        return len(self._routes)

    def _insert(self, entry: RouteEntry) -> None:
        self._routes.append(entry)
        self._routes.sort(key=lambda r: (-r.prefix_length, r.admin_distance))

    def _notify(self, action: TableAction, entry: RouteEntry, explanation: str) -> None:
        self.event_bus.publish(
            SimEvent.TABLE_ROUTE_UPDATE,
            TableUpdateEvent(self.device_id, TableType.ROUTE, action, entry, explanation),
        )


class VirtualConfig:
    """Running and startup configuration of a device."""

    def __init__(self) -> None:
        self._running: Dict[str, Any] = {}
        self._startup: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._running.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._running[key] = value

    def delete(self, key: str) -> None:
        self._running.pop(key, None)

    def save_to_startup(self) -> None:
        """Copy running to startup (``copy running-config startup-config``)."""
        self._startup = copy.deepcopy(self._running)

    def load_from_startup(self) -> None:
        """Copy startup to running (reload)."""
        self._running = copy.deepcopy(self._startup)

    def export_running_config(
        self, hostname: str, interfaces: List[NetworkInterface]
    ) -> List[str]:
        """Render the running configuration as IOS-like lines.

        Args:
            hostname: Device hostname.
            interfaces: Ports of the device.

        Returns:
            Configuration lines.
        """
        lines = ["!", f"! Running configuration - {hostname}", "!", f"hostname {hostname}", "!"]
        for iface in interfaces:
            lines.append(f"interface {iface.name}")
            if iface.ip_config is not None:
                lines.append(f" ip address {iface.ip_config.address} {iface.ip_config.mask}")
            lines.append(" no shutdown" if iface.admin_up else " shutdown")
            lines.append("!")
        for route in self.get("static_routes", []):
            lines.append(f"ip route {route['network']} {route['mask']} {route['next_hop']}")
        lines.extend(["!", "end"])
        return lines

    @property
    def running(self) -> Dict[str, Any]:
        return copy.deepcopy(self._running)

    @property
    def startup(self) -> Dict[str, Any]:
        return copy.deepcopy(self._startup)

    def clear(self) -> None:
        self._running.clear()
        self._startup.clear()


@dataclass
class DeviceState:
    """All protocol state owned by one device."""

    device_id: str
    device_type: DeviceType
    arp_table: ArpTable
    cam_table: CamTable
    routing_table: RoutingTable
    virtual_config: VirtualConfig


class DeviceStateManager:
    """Owns the tables of every device, keyed by device id.

    Protocol services obtain table handles only through this manager.
    """

    def __init__(self, event_bus: EventBus, config: Optional[SimulationConfig] = None):
        self.event_bus = event_bus
        self.config = config or SimulationConfig()
        self._states: Dict[str, DeviceState] = {}

    def get_or_create(self, device_id: str, device_type: DeviceType) -> DeviceState:
        """Return a device's state, creating empty tables on first use."""
        state = self._states.get(device_id)
        if state is None:
            state = DeviceState(
                device_id=device_id,
                device_type=device_type,
                arp_table=ArpTable(device_id, self.event_bus, self.config.arp_timeout),
                cam_table=CamTable(device_id, self.event_bus, self.config.cam_aging_time),
                routing_table=RoutingTable(device_id, self.event_bus),
                virtual_config=VirtualConfig(),
            )
            self._states[device_id] = state
        return state

    def get(self, device_id: str) -> Optional[DeviceState]:
        return self._states.get(device_id)

    @staticmethod
    def is_l3_device(device_type: DeviceType) -> bool:
        return device_type in L3_DEVICE_TYPES

    @staticmethod
    def is_switch(device_type: DeviceType) -> bool:
        return device_type in SWITCH_DEVICE_TYPES

    @staticmethod
    def is_router(device_type: DeviceType) -> bool:
        return device_type in ROUTING_DEVICE_TYPES

    @staticmethod
    def is_end_host(device_type: DeviceType) -> bool:
        return device_type in END_HOST_TYPES

    def age_all(self, tick: int) -> int:
        """Age every ARP and CAM table.

        Args:
            tick: Current tick.

        Returns:
            Number of evicted entries.
        """
        evicted = 0
        for state in self._states.values():
            evicted += len(state.arp_table.age(tick))
            evicted += len(state.cam_table.age(tick))
        return evicted

    def prune_interfaces(self, device_id: str, interface_ids: Iterable[str]) -> None:
        """Drop ARP/CAM entries that reference interfaces the device lost."""
        state = self._states.get(device_id)
        if state is None:
            return
        interface_ids = list(interface_ids)
        state.arp_table.prune_interfaces(interface_ids)
        state.cam_table.prune_interfaces(interface_ids)

    def serialize(self) -> List[Dict[str, Any]]:
        """Snapshot every device's tables as plain dictionaries."""
        snapshot = []
        for device_id, state in self._states.items():
            snapshot.append(
                {
                    "device_id": device_id,
                    "arp_table": [asdict(e) for e in state.arp_table.entries()],
                    "cam_table": [asdict(e) for e in state.cam_table.entries()],
                    "routing_table": [
                        dict(asdict(r), route_type=r.route_type.value)
                        for r in state.routing_table.entries()
                    ],
                    "running_config": state.virtual_config.running,
                    "startup_config": state.virtual_config.startup,
                }
            )
        return snapshot

    def reset(self) -> None:
        for state in self._states.values():
            state.arp_table.clear()
            state.cam_table.clear()
            state.routing_table.clear()
            state.virtual_config.clear()
        self._states.clear()

    def remove(self, device_id: str) -> None:
        self._states.pop(device_id, None)

    def device_ids(self) -> List[str]:
        return list(self._states)

    def __contains__(self, device_id: str) -> bool:
        return device_id in self._states

    def __len__(self) -> int:
        return len(self._states)

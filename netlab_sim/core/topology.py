"""Topology model for network simulation.

This module defines the Device, NetworkInterface and Link classes and the
Topology graph the engine reads. The topology is owned by whatever edits it
(an editor, a JSON file, a test); the engine treats it as read-mostly input.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

import networkx as nx

from netlab_sim.core.enums import DeviceStatus, DeviceType, LinkStatus
from netlab_sim.utils.ip import is_valid_ip


@dataclass
class IpConfig:
    address: str
    mask: str


@dataclass
class NetworkInterface:
    """A physical port on a device.

    Attributes:
        id: Interface identifier, unique within the device.
        name: Long name (e.g. "GigabitEthernet0/0").
        short_name: Abbreviated name (e.g. "Gi0/0").
        media: Media type (rj45, sfp, wifi).
        speed: Nominal speed label.
        mac_address: Hardware address of the port.
        admin_up: Administrative state.
        ip_config: Optional address/mask assigned to the port.
        connected_edge_id: Link plugged into the port, None if free.
    """

    id: str
    mac_address: str
    name: str = ""
    short_name: str = ""
    media: str = "rj45"
    speed: str = "1G"
    admin_up: bool = True
    ip_config: Optional[IpConfig] = None
    connected_edge_id: Optional[str] = None

    def __post_init__(self):
        self.mac_address = self.mac_address.upper()
        if not self.name:
            self.name = self.id
        if not self.short_name:
            self.short_name = self.name

    @property
    def is_active(self) -> bool:
        """Whether the port is enabled and cabled."""
        return self.admin_up and self.connected_edge_id is not None


@dataclass
class Device:
    """A node of the topology.

    Device-level addressing is the fallback for interfaces that carry no
    address of their own.

    Attributes:
        id: Unique identifier for the device.
        device_type: Kind of device.
        label: Display name used in logs.
        ip_address: Primary address.
        subnet_mask: Primary mask.
        mac_address: Device MAC used when a port has none.
        gateway: Default gateway for end hosts.
        status: Online/offline.
        link_status: Global link state.
        interfaces: Physical ports.
        static_routes: Configured static routes, each a dict with network,
            mask, next_hop and an optional out_interface.
    """

    id: str
    device_type: DeviceType
    label: str = ""
    ip_address: str = ""
    subnet_mask: str = ""
    mac_address: str = ""
    gateway: str = ""
    status: DeviceStatus = DeviceStatus.ONLINE
    link_status: LinkStatus = LinkStatus.UP
    interfaces: List[NetworkInterface] = field(default_factory=list)
    static_routes: List[Dict[str, str]] = field(default_factory=list)

    def __post_init__(self):
        self.device_type = DeviceType(self.device_type)
        self.status = DeviceStatus(self.status)
        self.link_status = LinkStatus(self.link_status)
        self.mac_address = self.mac_address.upper()
        if not self.label:
            self.label = self.id

    def interface(self, interface_id: Optional[str]) -> Optional[NetworkInterface]:
        for iface in self.interfaces:
            if iface.id == interface_id:
                return iface
        return None

    def interface_on_link(self, link_id: str) -> Optional[NetworkInterface]:
        for iface in self.interfaces:
            if iface.connected_edge_id == link_id:
                return iface
        return None

    def active_interfaces(self) -> List[NetworkInterface]:
        return [iface for iface in self.interfaces if iface.is_active]

    def address_on(self, iface: Optional[NetworkInterface]) -> Tuple[str, str]:
        """Return the (address, mask) used on a port, falling back to the device's."""
        if iface is not None and iface.ip_config is not None:
            return iface.ip_config.address, iface.ip_config.mask
        return self.ip_address, self.subnet_mask

    def mac_on(self, iface: Optional[NetworkInterface]) -> str:
        if iface is not None and iface.mac_address:
            return iface.mac_address
        return self.mac_address

    @property
    def primary_address(self) -> str:
        """Address used as a ping target."""
        if self.ip_address:
            return self.ip_address
        for iface in self.interfaces:
            if iface.ip_config is not None:
                return iface.ip_config.address
        return ""

    def owns_address(self, address: str) -> bool:
        if not address:
            return False
        if self.ip_address == address:
            return True
        return any(
            iface.ip_config is not None and iface.ip_config.address == address
            for iface in self.interfaces
        )

    def owns_mac(self, mac: str) -> bool:
        mac = mac.upper()
        if self.mac_address == mac:
            return True
        return any(iface.mac_address == mac for iface in self.interfaces)

    def is_online(self) -> bool:
        return self.status is DeviceStatus.ONLINE


@dataclass(frozen=True)
class Link:
    """A cable between two device ports."""

    id: str
    source: str
    source_interface: str
    target: str
    target_interface: str

    def other_end(self, device_id: str) -> str:
        return self.target if device_id == self.source else self.source


class Topology:
    """Graph of devices and links.

    Attributes:
        graph: NetworkX multigraph keyed by device id, one edge per link.
        devices: Devices keyed by id.
        links: Links keyed by id.
    """

    def __init__(self) -> None:
        self.graph = nx.MultiGraph()
        self.devices: Dict[str, Device] = {}
        self.links: Dict[str, Link] = {}

    def add_device(self, device: Device) -> Device:
        """Add a device to the topology.

        Raises:
            ValueError: If the id is already taken.
        """
        if device.id in self.devices:
            raise ValueError(f"Device {device.id} already exists")
        self.devices[device.id] = device
        self.graph.add_node(device.id)
        return device

    def add_link(
        self,
        source: str,
        source_interface: str,
        target: str,
        target_interface: str,
        link_id: Optional[str] = None,
    ) -> Link:
        """Cable two ports together.

        Args:
            source: Source device id.
            source_interface: Port id on the source.
            target: Target device id.
            target_interface: Port id on the target.
            link_id: Optional explicit identifier.

        Returns:
            The created Link.
        """
        if source not in self.devices or target not in self.devices:
            raise ValueError(f"Devices {source} and/or {target} do not exist")
        if source == target:
            raise ValueError("Cannot connect a device to itself")

        src_iface = self.devices[source].interface(source_interface)
        dst_iface = self.devices[target].interface(target_interface)
        if src_iface is None or dst_iface is None:
            raise ValueError(
                f"Unknown interface {source}:{source_interface} or {target}:{target_interface}"
            )
        if src_iface.connected_edge_id or dst_iface.connected_edge_id:
            raise ValueError("Interface is already connected")

        link_id = link_id or f"link-{len(self.links) + 1}"
        if link_id in self.links:
            raise ValueError(f"Link {link_id} already exists")

        link = Link(link_id, source, source_interface, target, target_interface)
        self.links[link_id] = link
        src_iface.connected_edge_id = link_id
        dst_iface.connected_edge_id = link_id
        self.graph.add_edge(source, target, key=link_id)
        return link

    def remove_link(self, link_id: str) -> None:
        link = self.links.pop(link_id)
        for device_id, iface_id in (
            (link.source, link.source_interface),
            (link.target, link.target_interface),
        ):
            iface = self.devices[device_id].interface(iface_id)
            if iface is not None:
                iface.connected_edge_id = None
        self.graph.remove_edge(link.source, link.target, key=link_id)

    def remove_device(self, device_id: str) -> None:
        for link in [l for l in self.links.values() if device_id in (l.source, l.target)]:
            self.remove_link(link.id)
        del self.devices[device_id]
        self.graph.remove_node(device_id)

    def device(self, device_id: str) -> Optional[Device]:
        return self.devices.get(device_id)

    def __iter__(self) -> Iterator[Device]:
        return iter(self.devices.values())

    def __len__(self) -> int:
        return len(self.devices)

    def find_connected(self, device_id: str, link_id: str) -> Optional[Tuple[Device, Link]]:
        """Return the device at the far end of a link, with the link."""
        link = self.links.get(link_id)
        if link is None or device_id not in (link.source, link.target):
            return None
        other = self.devices.get(link.other_end(device_id))
        if other is None:
            return None
        return other, link

    def ingress_interface(self, device: Device, link: Link) -> Optional[NetworkInterface]:
        return device.interface_on_link(link.id)

    def has_path(self, source: str, target: str) -> bool:
        if source not in self.graph or target not in self.graph:
            return False
        return nx.has_path(self.graph, source, target)

    def shortest_path(self, source: str, target: str) -> Optional[List[str]]:
        try:
            return nx.shortest_path(self.graph, source, target)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None

    def find_by_address(self, address: str) -> Optional[Device]:
        for device in self.devices.values():
            if device.owns_address(address):
                return device
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Topology":
        """Build a topology from its JSON representation.

        The expected shape is ``{"devices": [...], "links": [...]}`` where each
        device carries its interfaces and each link names two ports.
        """
        topology = cls()
        for raw in data.get("devices", []):
            interfaces = []
            for raw_iface in raw.get("interfaces", []):
                ip_config = None
                if raw_iface.get("ip_address"):
                    ip_config = IpConfig(raw_iface["ip_address"], raw_iface.get("subnet_mask", ""))
                interfaces.append(
                    NetworkInterface(
                        id=raw_iface["id"],
                        mac_address=raw_iface.get("mac_address", ""),
                        name=raw_iface.get("name", ""),
                        short_name=raw_iface.get("short_name", ""),
                        media=raw_iface.get("media", "rj45"),
                        speed=raw_iface.get("speed", "1G"),
                        admin_up=raw_iface.get("admin_up", True),
                        ip_config=ip_config,
                    )
                )
            topology.add_device(
                Device(
                    id=raw["id"],
                    device_type=DeviceType(raw["device_type"]),
                    label=raw.get("label", ""),
                    ip_address=raw.get("ip_address", ""),
                    subnet_mask=raw.get("subnet_mask", ""),
                    mac_address=raw.get("mac_address", ""),
                    gateway=raw.get("gateway", ""),
                    status=DeviceStatus(raw.get("status", "online")),
                    link_status=LinkStatus(raw.get("link_status", "up")),
                    interfaces=interfaces,
                    static_routes=list(raw.get("static_routes", [])),
                )
            )
        for raw in data.get("links", []):
            topology.add_link(
                raw["source"],
                raw["source_interface"],
                raw["target"],
                raw["target_interface"],
                raw.get("id"),
            )
        return topology

    def to_dict(self) -> Dict[str, Any]:
        devices = []
        for device in self.devices.values():
            interfaces = []
            for iface in device.interfaces:
                raw_iface: Dict[str, Any] = {
                    "id": iface.id,
                    "name": iface.name,
                    "short_name": iface.short_name,
                    "media": iface.media,
                    "speed": iface.speed,
                    "mac_address": iface.mac_address,
                    "admin_up": iface.admin_up,
                }
                if iface.ip_config is not None:
                    raw_iface["ip_address"] = iface.ip_config.address
                    raw_iface["subnet_mask"] = iface.ip_config.mask
                interfaces.append(raw_iface)
            devices.append(
                {
                    "id": device.id,
                    "device_type": device.device_type.value,
                    "label": device.label,
                    "ip_address": device.ip_address,
                    "subnet_mask": device.subnet_mask,
                    "mac_address": device.mac_address,
                    "gateway": device.gateway,
                    "status": device.status.value,
                    "link_status": device.link_status.value,
                    "interfaces": interfaces,
                    "static_routes": [dict(r) for r in device.static_routes],
                }
            )
        links = [
            {
                "id": link.id,
                "source": link.source,
                "source_interface": link.source_interface,
                "target": link.target,
                "target_interface": link.target_interface,
            }
            for link in self.links.values()
        ]
        return {"devices": devices, "links": links}


def has_gateway(device: Device) -> bool:
    """Whether a device has a usable (non-null, non-zero) gateway."""
    return is_valid_ip(device.gateway) and device.gateway != "0.0.0.0"

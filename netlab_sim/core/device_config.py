"""Device configuration surface.

This module defines DeviceConfigSurface, the narrow contract configuration
tooling (a CLI emulator, a test, a script) uses to change interface
addressing, port state, gateways and static routes, and to read the route
table back. Command parsing stays on the caller's side.
"""

from typing import Any, Dict, List, Optional, Tuple

from netlab_sim.core.device_state import DeviceState, RouteEntry, VirtualConfig
from netlab_sim.core.enums import SimEvent
from netlab_sim.core.events import PortStatusEvent
from netlab_sim.core.topology import Device, IpConfig, NetworkInterface
from netlab_sim.utils.ip import is_valid_ip, is_valid_mask, network_address


class DeviceConfigSurface:
    """Mutates device configuration on behalf of external tooling.

    Every change is applied to the topology, mirrored into the device's
    running configuration, and followed by a recomputation of its connected
    routes. The first change to a device snapshots its current state as the
    startup configuration.

    Attributes:
        orchestrator: Orchestrator whose topology and tables are edited.
    """

    def __init__(self, orchestrator):
        self.orchestrator = orchestrator

    def set_interface_address(
        self, device_id: str, interface_id: str, address: str, mask: str
    ) -> None:
        """Assign an address to an interface (``ip address A M``).

        Raises:
            ValueError: If the device, interface, address or mask is invalid.
        """
        if not is_valid_ip(address):
            raise ValueError(f"Invalid IP address: {address}")
        if not is_valid_mask(mask):
            raise ValueError(f"Invalid subnet mask: {mask}")
        device, iface = self._interface(device_id, interface_id)
        config = self._config(device)
        iface.ip_config = IpConfig(address, mask)
        _store_interface(config, iface)
        self._refresh_routes(device)

    def clear_interface_address(self, device_id: str, interface_id: str) -> None:
        """Remove an interface's address (``no ip address``)."""
        device, iface = self._interface(device_id, interface_id)
        config = self._config(device)
        iface.ip_config = None
        _store_interface(config, iface)
        self._refresh_routes(device)

    def set_interface_admin_state(self, device_id: str, interface_id: str, up: bool) -> None:
        """Enable or shut down an interface (``no shutdown`` / ``shutdown``)."""
        device, iface = self._interface(device_id, interface_id)
        config = self._config(device)
        iface.admin_up = up
        _store_interface(config, iface)
        self._refresh_routes(device)
        self.orchestrator.event_bus.publish(
            SimEvent.PORT_STATUS_CHANGE, PortStatusEvent(device.id, iface.id, up)
        )

    def set_gateway(self, device_id: str, gateway: str) -> None:
        """Set (or clear with an empty string) a host's default gateway."""
        if gateway and not is_valid_ip(gateway):
            raise ValueError(f"Invalid gateway: {gateway}")
        device = self._device(device_id)
        config = self._config(device)
        device.gateway = gateway
        config.set("gateway", gateway)
        self._refresh_routes(device)

    def add_static_route(
        self,
        device_id: str,
        network: str,
        mask: str,
        next_hop: str,
        out_interface: Optional[str] = None,
    ) -> Optional[RouteEntry]:
        """Add a static route (``ip route N M H``).

        Returns:
            The new route, or None if an identical route already exists.

        Raises:
            ValueError: On invalid input or a device without Layer-3 support.
        """
        for value, label in ((network, "network"), (next_hop, "next hop")):
            if not is_valid_ip(value):
                raise ValueError(f"Invalid {label}: {value}")
        if not is_valid_mask(mask):
            raise ValueError(f"Invalid subnet mask: {mask}")
        device = self._device(device_id)
        if not self.orchestrator.device_states.is_l3_device(device.device_type):
            raise ValueError(f"{device.label} does not support IP routing")

        config = self._config(device)
        entry = self._state(device).routing_table.add_static_route(
            network, mask, next_hop, out_interface
        )
        if entry is not None:
            routes = config.get("static_routes", [])
            routes.append(_route_settings(entry))
            config.set("static_routes", routes)
            if not any(_same_route(r, entry) for r in device.static_routes):
                device.static_routes.append(_route_settings(entry))
        return entry

    def remove_static_route(
        self, device_id: str, network: str, mask: str, next_hop: Optional[str] = None
    ) -> bool:
        """Remove a static route (``no ip route N M [H]``).

        Returns:
            True if a route was removed.
        """
        device = self._device(device_id)
        config = self._config(device)
        table = self._state(device).routing_table
        normalized = network_address(network, mask)

        for route in table.static_routes():
            if route.from_gateway or route.network != normalized or route.mask != mask:
                continue
            if next_hop is not None and route.next_hop != next_hop:
                continue
            table.remove_route(route.network, route.mask, route.next_hop)
            config.set(
                "static_routes",
                [r for r in config.get("static_routes", []) if not _same_route(r, route)],
            )
            device.static_routes = [r for r in device.static_routes if not _same_route(r, route)]
            return True
        return False

    def route_table(self, device_id: str) -> List[RouteEntry]:
        """Return the current routes (``show ip route``)."""
        return self._state(self._device(device_id)).routing_table.entries()

    def save_config(self, device_id: str) -> None:
        """Copy running to startup (``copy running-config startup-config``)."""
        self._config(self._device(device_id)).save_to_startup()

    def reload_config(self, device_id: str) -> None:
        """Replace running with startup and re-apply it to the device."""
        device = self._device(device_id)
        config = self._config(device)
        config.load_from_startup()

        for iface_id, settings in config.get("interfaces", {}).items():
            iface = device.interface(iface_id)
            if iface is None:
                continue
            iface.admin_up = settings["admin_up"]
            if settings.get("ip_address"):
                iface.ip_config = IpConfig(settings["ip_address"], settings["subnet_mask"])
            else:
                iface.ip_config = None
        device.gateway = config.get("gateway", "")

        table = self._state(device).routing_table
        for route in table.static_routes():
            if not route.from_gateway:
                table.remove_route(route.network, route.mask, route.next_hop)
        for route in config.get("static_routes", []):
            table.add_static_route(
                route["network"],
                route["mask"],
                route["next_hop"],
                route.get("out_interface") or None,
            )
        device.static_routes = [dict(r) for r in config.get("static_routes", [])]
        self._refresh_routes(device)

    def running_config(self, device_id: str) -> List[str]:
        """Render the running configuration (``show running-config``)."""
        device = self._device(device_id)
        return self._config(device).export_running_config(device.label, device.interfaces)

    def _device(self, device_id: str) -> Device:
        device = self.orchestrator.topology.device(device_id)
        if device is None:
            raise ValueError(f"Unknown device: {device_id}")
        return device

    def _interface(self, device_id: str, interface_id: str) -> Tuple[Device, NetworkInterface]:
        device = self._device(device_id)
        iface = device.interface(interface_id)
        if iface is None:
            raise ValueError(f"Unknown interface {interface_id} on {device.label}")
        return device, iface

    def _state(self, device: Device) -> DeviceState:
        return self.orchestrator.device_states.get_or_create(device.id, device.device_type)

    def _config(self, device: Device) -> VirtualConfig:
        state = self._state(device)
        config = state.virtual_config
        if config.get("interfaces") is None:
            config.set("interfaces", {i.id: _interface_settings(i) for i in device.interfaces})
            config.set("gateway", device.gateway)
            config.set(
                "static_routes",
                [
                    _route_settings(r)
                    for r in state.routing_table.static_routes()
                    if not r.from_gateway
                ],
            )
            config.save_to_startup()
        return config

    def _refresh_routes(self, device: Device) -> None:
        self.orchestrator.routing.initialize_connected_routes(device)


def _interface_settings(iface: NetworkInterface) -> Dict[str, Any]:
    settings: Dict[str, Any] = {"admin_up": iface.admin_up}
    if iface.ip_config is not None:
        settings["ip_address"] = iface.ip_config.address
        settings["subnet_mask"] = iface.ip_config.mask
    return settings


def _route_settings(route: RouteEntry) -> Dict[str, str]:
    return {
        "network": route.network,
        "mask": route.mask,
        "next_hop": route.next_hop,
        "out_interface": route.out_interface,
    }


def _same_route(settings: Dict[str, str], route: RouteEntry) -> bool:
    return (
        network_address(settings["network"], settings["mask"]),
        settings["mask"],
        settings["next_hop"],
    ) == (route.network, route.mask, route.next_hop)


def _store_interface(config: VirtualConfig, iface: NetworkInterface) -> None:
    interfaces = config.get("interfaces")
    interfaces[iface.id] = _interface_settings(iface)
    config.set("interfaces", interfaces)

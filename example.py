#!/usr/bin/env python3
"""Example simulations using the netlab_sim package.

This script builds a few small topologies in code and pings across them:
a single switched LAN, two LANs joined by a pair of routers, the same pair
with a TTL too small to make it, and one run driven by a simpy clock.
"""

from typing import Dict, List, Optional

import simpy

from netlab_sim.core.device_config import DeviceConfigSurface
from netlab_sim.core.enums import DeviceType, SimEvent
from netlab_sim.core.events import TableUpdateEvent
from netlab_sim.core.orchestrator import SimulationOrchestrator
from netlab_sim.core.topology import Device, IpConfig, NetworkInterface, Topology
from netlab_sim.utils.reporting import format_device_tables, format_summary


def make_host(
    device_id: str, address: str, mac: str, gateway: str = "", mask: str = "255.255.255.0"
) -> Device:
    """Create a PC with one addressed port.

    Args:
        device_id: Identifier (also used as label).
        address: Host address.
        mac: Port MAC.
        gateway: Default gateway.
        mask: Subnet mask.

    Returns:
        The new Device.
    """
    return Device(
        id=device_id,
        device_type=DeviceType.PC,
        ip_address=address,
        subnet_mask=mask,
        gateway=gateway,
        interfaces=[NetworkInterface("eth0", mac, name="FastEthernet0", short_name="Fa0")],
    )


def make_switch(device_id: str, ports: int, mac_prefix: str) -> Device:
    interfaces = [
        NetworkInterface(
            f"fa0-{i}",
            f"{mac_prefix}:{i:02X}",
            name=f"FastEthernet0/{i}",
            short_name=f"Fa0/{i}",
        )
        for i in range(1, ports + 1)
    ]
    return Device(id=device_id, device_type=DeviceType.SWITCH_L2, interfaces=interfaces)


def make_router(device_id: str, ports: Dict[str, str], mac_prefix: str) -> Device:
    """Create a router with one addressed port per entry of ``ports``.

    Args:
        device_id: Identifier (also used as label).
        ports: Maps port id (e.g. "gi0-0") to its /24 address.
        mac_prefix: First five octets of the port MACs.

    Returns:
        The new Device.
    """
    interfaces = []
    for index, (port_id, address) in enumerate(ports.items()):
        interfaces.append(
            NetworkInterface(
                port_id,
                f"{mac_prefix}:{index:02X}",
                name=f"GigabitEthernet0/{index}",
                short_name=f"Gi0/{index}",
                ip_config=IpConfig(address, "255.255.255.0"),
            )
        )
    return Device(id=device_id, device_type=DeviceType.ROUTER, interfaces=interfaces)


def build_lan() -> Topology:
    """Two PCs on one switch."""
    topology = Topology()
    topology.add_device(make_host("PC-A", "192.168.1.10", "00:1A:2B:00:00:0A"))
    topology.add_device(make_switch("SW1", 4, "00:1A:2B:00:01"))
    topology.add_device(make_host("PC-B", "192.168.1.20", "00:1A:2B:00:00:0B"))
    topology.add_link("PC-A", "eth0", "SW1", "fa0-1")
    topology.add_link("SW1", "fa0-2", "PC-B", "eth0")
    return topology


def build_routed() -> Topology:
    """Two LANs joined by R1 and R2 over a transfer network.

    Static routes are configured later through DeviceConfigSurface.
    """
    topology = Topology()
    topology.add_device(make_host("PC-A", "10.0.1.10", "00:AA:00:00:01:0A", gateway="10.0.1.1"))
    topology.add_device(make_switch("SW1", 2, "00:AA:00:01:00"))
    topology.add_device(
        make_router("R1", {"gi0-0": "10.0.1.1", "gi0-1": "10.0.12.1"}, "00:AA:00:10:00")
    )
    topology.add_device(
        make_router("R2", {"gi0-0": "10.0.2.1", "gi0-1": "10.0.12.2"}, "00:AA:00:20:00")
    )
    topology.add_device(make_switch("SW2", 2, "00:AA:00:02:00"))
    topology.add_device(make_host("PC-B", "10.0.2.10", "00:AA:00:00:02:0A", gateway="10.0.2.1"))

    topology.add_link("PC-A", "eth0", "SW1", "fa0-1")
    topology.add_link("SW1", "fa0-2", "R1", "gi0-0")
    topology.add_link("R1", "gi0-1", "R2", "gi0-1")
    topology.add_link("R2", "gi0-0", "SW2", "fa0-1")
    topology.add_link("SW2", "fa0-2", "PC-B", "eth0")
    return topology


def configure_static_routes(orchestrator: SimulationOrchestrator) -> None:
    surface = DeviceConfigSurface(orchestrator)
    surface.add_static_route("R1", "10.0.2.0", "255.255.255.0", "10.0.12.2")
    surface.add_static_route("R2", "10.0.1.0", "255.255.255.0", "10.0.12.1")
    print("\n".join(surface.running_config("R1")))


def run_example(
    title: str,
    topology: Topology,
    source: str,
    target: str,
    ttl: Optional[int] = None,
    routed: bool = False,
    show_tables: bool = False,
) -> SimulationOrchestrator:
    """Run one ping and print its outcome.

    Args:
        title: Heading printed before the run.
        topology: Topology to simulate.
        source: Sending device id.
        target: Target device id.
        ttl: Optional initial TTL.
        routed: Whether to configure the R1/R2 static routes first.
        show_tables: Whether to print the device tables afterwards.

    Returns:
        The orchestrator, for further inspection.
    """
    print(f"\n=== {title} ===")
    orchestrator = SimulationOrchestrator()
    orchestrator.initialize(topology)
    if routed:
        configure_static_routes(orchestrator)

    updates: List[TableUpdateEvent] = []
    for event_type in (SimEvent.TABLE_ARP_UPDATE, SimEvent.TABLE_CAM_UPDATE):
        orchestrator.event_bus.subscribe(event_type, updates.append)

    summary = orchestrator.execute_ping(source, target, ttl=ttl)
    for log in summary.logs:
        print(log)
    print()
    print(format_summary(summary))
    print(f"ARP/CAM table updates: {len(updates)}")

    if show_tables:
        print()
        print(format_device_tables(orchestrator.device_states, topology))
    return orchestrator


def run_animated_example() -> None:
    """Drive a ping from a simpy clock instead of stepping it by hand."""
    print("\n=== Animated ping on a simpy clock ===")
    orchestrator = SimulationOrchestrator()
    orchestrator.initialize(build_lan())

    env = simpy.Environment()
    done = orchestrator.animate_ping(env, "PC-A", "PC-B")
    env.run(until=done)

    summary = done.value
    print(format_summary(summary))
    print(f"Simulated wall-clock time: {env.now:.1f} s")


if __name__ == "__main__":
    run_example("Ping on a single LAN", build_lan(), "PC-A", "PC-B", show_tables=True)
    run_example("Ping across two routers", build_routed(), "PC-A", "PC-B", routed=True)
    run_example("Ping with TTL 1", build_routed(), "PC-A", "PC-B", ttl=1, routed=True)
    run_example("Ping without static routes", build_routed(), "PC-A", "PC-B")
    run_animated_example()

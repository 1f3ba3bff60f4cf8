import pytest

from netlab_sim.config import SimulationConfig
from netlab_sim.core.enums import DeviceType
from netlab_sim.core.event_bus import EventBus
from netlab_sim.core.orchestrator import SimulationOrchestrator
from netlab_sim.core.topology import Device, IpConfig, NetworkInterface, Topology

MASK = "255.255.255.0"


def host(device_id, address, mac, gateway=""):
    return Device(
        id=device_id,
        device_type=DeviceType.PC,
        ip_address=address,
        subnet_mask=MASK,
        gateway=gateway,
        interfaces=[NetworkInterface("eth0", mac)],
    )


def switch(device_id, ports, mac_prefix):
    return Device(
        id=device_id,
        device_type=DeviceType.SWITCH_L2,
        interfaces=[
            NetworkInterface(f"p{i}", f"{mac_prefix}:{i:02X}") for i in range(1, ports + 1)
        ],
    )


def router(device_id, addresses, mac_prefix, static_routes=None):
    return Device(
        id=device_id,
        device_type=DeviceType.ROUTER,
        interfaces=[
            NetworkInterface(
                f"g{i}", f"{mac_prefix}:{i:02X}", ip_config=IpConfig(address, MASK)
            )
            for i, address in enumerate(addresses)
        ],
        static_routes=list(static_routes or []),
    )


def l3_switch(device_id, addresses, mac_prefix):
    return Device(
        id=device_id,
        device_type=DeviceType.SWITCH_L3,
        interfaces=[
            NetworkInterface(
                f"p{i}",
                f"{mac_prefix}:{i:02X}",
                ip_config=IpConfig(address, MASK) if address else None,
            )
            for i, address in enumerate(addresses, 1)
        ],
    )


def build_same_lan():
    """A - sw1 - B on 192.168.1.0/24."""
    topology = Topology()
    topology.add_device(host("A", "192.168.1.10", "00:00:00:00:00:0A"))
    topology.add_device(switch("sw1", 3, "00:00:00:00:10"))
    topology.add_device(host("B", "192.168.1.20", "00:00:00:00:00:0B"))
    topology.add_link("A", "eth0", "sw1", "p1")
    topology.add_link("sw1", "p2", "B", "eth0")
    return topology


def build_routed(with_routes=True):
    """A - sw1 - R1 - R2 - sw2 - B across 10.0.1.0/24, 10.0.12.0/24 and 10.0.2.0/24."""
    r1_routes = r2_routes = None
    if with_routes:
        r1_routes = [{"network": "10.0.2.0", "mask": MASK, "next_hop": "10.0.12.2"}]
        r2_routes = [{"network": "10.0.1.0", "mask": MASK, "next_hop": "10.0.12.1"}]

    topology = Topology()
    topology.add_device(host("A", "10.0.1.10", "00:00:00:00:01:0A", gateway="10.0.1.1"))
    topology.add_device(switch("sw1", 2, "00:00:00:00:11"))
    topology.add_device(router("R1", ["10.0.1.1", "10.0.12.1"], "00:00:00:00:21", r1_routes))
    topology.add_device(router("R2", ["10.0.2.1", "10.0.12.2"], "00:00:00:00:22", r2_routes))
    topology.add_device(switch("sw2", 2, "00:00:00:00:12"))
    topology.add_device(host("B", "10.0.2.10", "00:00:00:00:02:0B", gateway="10.0.2.1"))
    topology.add_link("A", "eth0", "sw1", "p1")
    topology.add_link("sw1", "p2", "R1", "g0")
    topology.add_link("R1", "g1", "R2", "g1")
    topology.add_link("R2", "g0", "sw2", "p1")
    topology.add_link("sw2", "p2", "B", "eth0")
    return topology


def build_disconnected():
    """A - sw1 and an isolated B."""
    topology = Topology()
    topology.add_device(host("A", "192.168.1.10", "00:00:00:00:00:0A"))
    topology.add_device(switch("sw1", 2, "00:00:00:00:10"))
    topology.add_device(host("B", "192.168.1.20", "00:00:00:00:00:0B"))
    topology.add_link("A", "eth0", "sw1", "p1")
    return topology


def build_l3_gateway():
    """A - L3 - B with the Layer-3 switch as gateway of both subnets."""
    topology = Topology()
    topology.add_device(host("A", "10.0.1.10", "00:00:00:00:01:0A", gateway="10.0.1.1"))
    topology.add_device(l3_switch("L3", ["10.0.1.1", "10.0.2.1"], "00:00:00:00:30"))
    topology.add_device(host("B", "10.0.2.10", "00:00:00:00:02:0B", gateway="10.0.2.1"))
    topology.add_link("A", "eth0", "L3", "p1")
    topology.add_link("L3", "p2", "B", "eth0")
    return topology


def build_l3_lan():
    """A - L3 - B on one subnet; the Layer-3 switch only owns 192.168.1.1."""
    topology = Topology()
    topology.add_device(host("A", "192.168.1.10", "00:00:00:00:00:0A"))
    topology.add_device(l3_switch("L3", ["", "", "192.168.1.1"], "00:00:00:00:30"))
    topology.add_device(host("B", "192.168.1.20", "00:00:00:00:00:0B"))
    topology.add_link("A", "eth0", "L3", "p1")
    topology.add_link("L3", "p2", "B", "eth0")
    return topology


def build_switch_triangle():
    """A - s1, B - s3 with s1, s2 and s3 cabled in a loop."""
    topology = Topology()
    topology.add_device(host("A", "192.168.1.10", "00:00:00:00:00:0A"))
    topology.add_device(switch("s1", 3, "00:00:00:00:41"))
    topology.add_device(switch("s2", 2, "00:00:00:00:42"))
    topology.add_device(switch("s3", 3, "00:00:00:00:43"))
    topology.add_device(host("B", "192.168.1.20", "00:00:00:00:00:0B"))
    topology.add_link("A", "eth0", "s1", "p1")
    topology.add_link("s1", "p2", "s2", "p1")
    topology.add_link("s1", "p3", "s3", "p1")
    topology.add_link("s2", "p2", "s3", "p2")
    topology.add_link("s3", "p3", "B", "eth0")
    return topology


def build_switch_mesh():
    """Four switches in a full mesh; A points at a gateway nobody owns."""
    topology = Topology()
    topology.add_device(host("A", "10.0.1.10", "00:00:00:00:01:0A", gateway="10.0.1.254"))
    topology.add_device(host("B", "10.0.2.10", "00:00:00:00:02:0B", gateway="10.0.2.1"))
    for n in range(1, 5):
        topology.add_device(switch(f"s{n}", 4, f"00:00:00:00:5{n}"))
    topology.add_link("s1", "p1", "s2", "p1")
    topology.add_link("s1", "p2", "s3", "p1")
    topology.add_link("s1", "p3", "s4", "p1")
    topology.add_link("s2", "p2", "s3", "p2")
    topology.add_link("s2", "p3", "s4", "p2")
    topology.add_link("s3", "p3", "s4", "p3")
    topology.add_link("A", "eth0", "s1", "p4")
    topology.add_link("B", "eth0", "s4", "p4")
    return topology


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def config():
    return SimulationConfig()


@pytest.fixture
def same_lan():
    return build_same_lan()


@pytest.fixture
def routed():
    return build_routed()


@pytest.fixture
def unrouted():
    return build_routed(with_routes=False)


@pytest.fixture
def disconnected():
    return build_disconnected()


@pytest.fixture
def make_orchestrator():
    def factory(topology, **config_values):
        orchestrator = SimulationOrchestrator(config=SimulationConfig(**config_values))
        orchestrator.initialize(topology)
        return orchestrator

    return factory


@pytest.fixture
def l3_gateway():
    return build_l3_gateway()


@pytest.fixture
def l3_lan():
    return build_l3_lan()


@pytest.fixture
def switch_triangle():
    return build_switch_triangle()


@pytest.fixture
def switch_mesh():
    return build_switch_mesh()

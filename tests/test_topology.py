import json
from pathlib import Path

import pytest

from netlab_sim.core.enums import DeviceType
from netlab_sim.core.orchestrator import SimulationOrchestrator
from netlab_sim.core.topology import Device, NetworkInterface, Topology, has_gateway

TOPOLOGIES = Path(__file__).resolve().parent.parent / "topologies"


def load(name):
    with open(TOPOLOGIES / name) as f:
        return Topology.from_dict(json.load(f))


def test_add_link_sets_back_references(same_lan):
    a = same_lan.device("A")
    sw1 = same_lan.device("sw1")

    link_id = a.interface("eth0").connected_edge_id
    assert link_id is not None
    assert sw1.interface_on_link(link_id).id == "p1"
    neighbor, link = same_lan.find_connected("A", link_id)
    assert neighbor.id == "sw1"
    assert same_lan.ingress_interface(neighbor, link).id == "p1"


def test_duplicate_device_is_rejected(same_lan):
    with pytest.raises(ValueError):
        same_lan.add_device(Device("A", DeviceType.PC))


def test_busy_interface_is_rejected(same_lan):
    same_lan.add_device(
        Device("C", DeviceType.PC, interfaces=[NetworkInterface("eth0", "00:00:00:00:00:0C")])
    )

    with pytest.raises(ValueError):
        same_lan.add_link("C", "eth0", "sw1", "p1")


def test_paths(routed, disconnected):
    assert routed.has_path("A", "B")
    assert routed.shortest_path("A", "B") == ["A", "sw1", "R1", "R2", "sw2", "B"]
    assert not disconnected.has_path("A", "B")
    assert disconnected.shortest_path("A", "B") is None


def test_remove_device_frees_ports(same_lan):
    same_lan.remove_device("B")

    assert same_lan.device("B") is None
    assert same_lan.device("sw1").interface("p2").connected_edge_id is None
    assert len(same_lan.links) == 1


def test_device_addressing_fallback(routed):
    a = routed.device("A")
    r1 = routed.device("R1")

    assert a.address_on(a.interface("eth0")) == ("10.0.1.10", "255.255.255.0")
    assert r1.address_on(r1.interface("g1")) == ("10.0.12.1", "255.255.255.0")
    assert r1.primary_address == "10.0.1.1"
    assert r1.owns_address("10.0.12.1")
    assert routed.find_by_address("10.0.2.10").id == "B"
    assert has_gateway(a)
    assert not has_gateway(r1)


def test_dict_form_keeps_static_routes(routed):
    data = routed.to_dict()
    rebuilt = Topology.from_dict(data)

    assert rebuilt.device("R1").static_routes == routed.device("R1").static_routes
    assert set(rebuilt.links) == set(routed.links)
    assert rebuilt.device("R1").interface("g0").ip_config.address == "10.0.1.1"


@pytest.mark.parametrize("name, ticks", [("same_lan.json", 64), ("routed.json", 160)])
def test_sample_topologies_ping(name, ticks):
    orchestrator = SimulationOrchestrator()
    orchestrator.initialize(load(name))

    summary = orchestrator.execute_ping("pc-a", "pc-b")

    assert summary.success
    assert summary.total_ticks == ticks

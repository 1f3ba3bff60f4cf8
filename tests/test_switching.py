import pytest

from netlab_sim.core.enums import SwitchAction
from netlab_sim.utils.ip import BROADCAST_MAC

MAC_A = "00:00:00:00:00:0A"
MAC_B = "00:00:00:00:00:0B"


@pytest.fixture
def orchestrator(make_orchestrator, same_lan):
    return make_orchestrator(same_lan)


@pytest.fixture
def sw1(orchestrator):
    return orchestrator.topology.device("sw1")


def frame(orchestrator, src_mac, dst_mac):
    if dst_mac == BROADCAST_MAC:
        return orchestrator.factory.arp_request(src_mac, "192.168.1.10", "192.168.1.20", "A", 0)
    return orchestrator.factory.icmp_echo_request(
        src_mac, dst_mac, "192.168.1.10", "192.168.1.20", "A", "B", 0
    )


def test_broadcast_floods_all_connected_ports_except_ingress(orchestrator, sw1):
    decision = orchestrator.switching.process_frame(
        sw1, frame(orchestrator, MAC_A, BROADCAST_MAC), "p1"
    )

    assert decision.action is SwitchAction.FLOOD
    # p3 is not cabled
    assert decision.out_ports == ["p2"]
    cam = orchestrator.get_device_state("sw1").cam_table
    assert cam.lookup(MAC_A).interface_id == "p1"


def test_unknown_unicast_floods(orchestrator, sw1):
    decision = orchestrator.switching.process_frame(sw1, frame(orchestrator, MAC_A, MAC_B), "p1")

    assert decision.action is SwitchAction.FLOOD
    assert "Unknown unicast" in decision.explanation


def test_known_unicast_forwards_out_one_port(orchestrator, sw1):
    orchestrator.switching.process_frame(sw1, frame(orchestrator, MAC_B, BROADCAST_MAC), "p2")

    decision = orchestrator.switching.process_frame(sw1, frame(orchestrator, MAC_A, MAC_B), "p1")

    assert decision.action is SwitchAction.FORWARD
    assert decision.out_ports == ["p2"]


def test_destination_on_ingress_port_is_filtered(orchestrator, sw1):
    orchestrator.switching.process_frame(sw1, frame(orchestrator, MAC_B, BROADCAST_MAC), "p1")

    decision = orchestrator.switching.process_frame(sw1, frame(orchestrator, MAC_A, MAC_B), "p1")

    assert decision.action is SwitchAction.FILTER
    assert decision.out_ports == []


def test_admin_down_port_is_not_flooded(orchestrator, sw1):
    sw1.interface("p2").admin_up = False

    decision = orchestrator.switching.process_frame(
        sw1, frame(orchestrator, MAC_A, BROADCAST_MAC), "p1"
    )

    assert decision.out_ports == []

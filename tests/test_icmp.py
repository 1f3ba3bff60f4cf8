import pytest

from netlab_sim.core.enums import IcmpType, PacketKind
from netlab_sim.utils.ip import ZERO_MAC


@pytest.fixture
def orchestrator(make_orchestrator, routed):
    return make_orchestrator(routed)


@pytest.fixture
def devices(orchestrator):
    topology = orchestrator.topology
    return topology.device("A"), topology.device("R1"), topology.device("B")


def test_create_ping_uses_configured_ttl(orchestrator, devices):
    a, _, _ = devices

    result = orchestrator.icmp.create_ping(a, "10.0.2.10", "B", ZERO_MAC, a.interface("eth0"))

    assert result.success
    request = result.packets[0]
    assert request.kind is PacketKind.ICMP_ECHO_REQUEST
    assert request.layer3.ttl == 64
    assert request.layer3.src_ip == "10.0.1.10"
    assert request.icmp.sequence == 1


def test_create_ping_with_explicit_ttl(orchestrator, devices):
    a, _, _ = devices

    result = orchestrator.icmp.create_ping(a, "10.0.2.10", "B", ZERO_MAC, a.interface("eth0"), ttl=3)

    assert result.packets[0].layer3.ttl == 3


def test_echo_reply_mirrors_request(orchestrator, devices):
    a, _, b = devices
    request = orchestrator.icmp.create_ping(
        a, "10.0.2.10", "B", ZERO_MAC, a.interface("eth0")
    ).packets[0]
    request = request.rewrite_l2(dst_mac="00:00:00:00:02:0B")

    result = orchestrator.icmp.handle_echo_request(b, request, b.interface("eth0"))

    reply = result.packets[0]
    assert reply.kind is PacketKind.ICMP_ECHO_REPLY
    assert reply.layer3.dst_ip == "10.0.1.10"
    assert reply.layer2.dst_mac == request.layer2.src_mac
    assert reply.icmp.sequence == request.icmp.sequence
    assert reply.icmp.identifier == request.icmp.identifier
    assert reply.destination_device_id == "A"


def test_echo_reply_round_trip(orchestrator, devices):
    a, _, b = devices
    request = orchestrator.icmp.create_ping(
        a, "10.0.2.10", "B", ZERO_MAC, a.interface("eth0")
    ).packets[0]
    for _ in range(12):
        orchestrator.scheduler.tick()
    reply = orchestrator.icmp.handle_echo_request(b, request, b.interface("eth0")).packets[0]
    for _ in range(8):
        orchestrator.scheduler.tick()

    result = orchestrator.icmp.handle_echo_reply(a, reply)

    assert result.success
    assert result.round_trip_ticks == 8


def test_error_messages_go_back_to_sender(orchestrator, devices):
    a, r1, _ = devices
    request = orchestrator.icmp.create_ping(
        a, "10.0.2.10", "B", ZERO_MAC, a.interface("eth0")
    ).packets[0]
    ingress = r1.interface("g0")

    unreachable = orchestrator.icmp.generate_unreachable(r1, request, ingress, code=0).packets[0]
    exceeded = orchestrator.icmp.generate_ttl_exceeded(r1, request, ingress).packets[0]

    assert unreachable.icmp.icmp_type is IcmpType.UNREACHABLE
    assert unreachable.icmp.code == 0
    assert exceeded.icmp.icmp_type is IcmpType.TTL_EXCEEDED
    for error in (unreachable, exceeded):
        assert error.is_error
        assert error.layer3.src_ip == "10.0.1.1"
        assert error.layer3.dst_ip == "10.0.1.10"
        assert error.layer2.dst_mac == request.layer2.src_mac


def test_needs_gateway(orchestrator, devices):
    a, _, _ = devices
    eth0 = a.interface("eth0")

    assert orchestrator.icmp.needs_gateway(a, "10.0.2.10", eth0)
    assert not orchestrator.icmp.needs_gateway(a, "10.0.1.77", eth0)


def test_payload_accessor_rejects_wrong_variant(orchestrator, devices):
    a, _, _ = devices
    request = orchestrator.icmp.create_ping(
        a, "10.0.2.10", "B", ZERO_MAC, a.interface("eth0")
    ).packets[0]

    with pytest.raises(TypeError):
        request.arp


def test_echo_reply_comes_from_pinged_address(orchestrator, devices):
    a, r1, _ = devices
    request = orchestrator.icmp.create_ping(
        a, "10.0.12.1", "R1", ZERO_MAC, a.interface("eth0")
    ).packets[0]

    reply = orchestrator.icmp.handle_echo_request(r1, request, r1.interface("g0")).packets[0]

    assert reply.layer3.src_ip == "10.0.12.1"
    assert reply.layer2.src_mac == r1.interface("g0").mac_address


def test_unreachable_log_names_the_cause(orchestrator, devices):
    a, r1, _ = devices
    request = orchestrator.icmp.create_ping(
        a, "10.0.2.10", "B", ZERO_MAC, a.interface("eth0")
    ).packets[0]
    ingress = r1.interface("g0")

    no_route = orchestrator.icmp.generate_unreachable(r1, request, ingress, code=0)
    no_arp = orchestrator.icmp.generate_unreachable(r1, request, ingress, code=1)

    assert no_route.logs[0].details == "No route to 10.0.2.10"
    assert no_arp.logs[0].details == "Host 10.0.2.10 did not answer ARP"

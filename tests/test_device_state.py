import pytest

from netlab_sim.config import SimulationConfig
from netlab_sim.core.device_state import (
    ArpTable,
    CamTable,
    DeviceStateManager,
    RoutingTable,
    VirtualConfig,
)
from netlab_sim.core.enums import DeviceType, RouteType, SimEvent, TableAction
from netlab_sim.core.topology import IpConfig, NetworkInterface

MASK = "255.255.255.0"


@pytest.fixture
def table_events(bus):
    events = []
    for event_type in (
        SimEvent.TABLE_ARP_UPDATE,
        SimEvent.TABLE_CAM_UPDATE,
        SimEvent.TABLE_ROUTE_UPDATE,
    ):
        bus.subscribe(event_type, events.append)
    return events


class TestArpTable:
    def test_add_and_refresh(self, bus, table_events):
        table = ArpTable("A", bus, timeout=50)
        table.add("10.0.0.1", "aa:bb:cc:dd:ee:ff", "eth0", tick=1)
        entry = table.add("10.0.0.1", "aa:bb:cc:dd:ee:ff", "eth0", tick=5)

        assert entry.mac_address == "AA:BB:CC:DD:EE:FF"
        assert table.lookup("10.0.0.1").learned_at == 5
        assert [e.action for e in table_events] == [TableAction.ADD, TableAction.UPDATE]

    def test_dynamic_entries_age_out(self, bus, table_events):
        table = ArpTable("A", bus, timeout=50)
        table.add("10.0.0.1", "AA:AA:AA:AA:AA:01", "eth0", tick=0)
        table.add("10.0.0.2", "AA:AA:AA:AA:AA:02", "eth0", tick=0, is_static=True)

        assert table.age(50) == []
        expired = table.age(51)

        assert [e.ip_address for e in expired] == ["10.0.0.1"]
        assert table.lookup("10.0.0.2") is not None
        assert table_events[-1].action is TableAction.TIMEOUT

    def test_prune_interfaces(self, bus):
        table = ArpTable("A", bus)
        table.add("10.0.0.1", "AA:AA:AA:AA:AA:01", "eth0", tick=0)
        table.add("10.0.0.2", "AA:AA:AA:AA:AA:02", "eth1", tick=0)

        table.prune_interfaces(["eth0"])

        assert [e.ip_address for e in table.entries()] == ["10.0.0.1"]


class TestCamTable:
    def test_learn_publishes_only_on_change(self, bus, table_events):
        table = CamTable("sw1", bus)
        table.learn("aa:aa:aa:aa:aa:01", "p1", tick=1)
        table.learn("AA:AA:AA:AA:AA:01", "p1", tick=2)
        table.learn("AA:AA:AA:AA:AA:01", "p2", tick=3)

        assert [e.action for e in table_events] == [TableAction.ADD, TableAction.UPDATE]
        assert table.lookup("aa:aa:aa:aa:aa:01").interface_id == "p2"
        assert len(table) == 1

    def test_aging(self, bus):
        table = CamTable("sw1", bus, aging_time=10)
        table.learn("AA:AA:AA:AA:AA:01", "p1", tick=0)
        table.learn("AA:AA:AA:AA:AA:02", "p2", tick=5)

        expired = table.age(12)

        assert [e.mac_address for e in expired] == ["AA:AA:AA:AA:AA:01"]
        assert table.lookup("AA:AA:AA:AA:AA:02") is not None


class TestRoutingTable:
    def test_longest_prefix_wins(self, bus):
        table = RoutingTable("R1", bus)
        table.add_static_route("0.0.0.0", "0.0.0.0", "10.0.0.254")
        table.add_static_route("10.1.0.0", "255.255.0.0", "10.0.0.2")
        table.add_connected_route("10.1.2.1", MASK, "g0")

        assert table.lookup("10.1.2.99").route_type is RouteType.CONNECTED
        assert table.lookup("10.1.9.9").next_hop == "10.0.0.2"
        assert table.lookup("8.8.8.8").next_hop == "10.0.0.254"

    def test_lower_admin_distance_breaks_ties(self, bus):
        table = RoutingTable("R1", bus)
        table.add_static_route("10.1.2.0", MASK, "10.0.0.2", admin_distance=5)
        table.add_connected_route("10.1.2.1", MASK, "g0")

        route = table.lookup("10.1.2.7")

        assert route.route_type is RouteType.CONNECTED
        assert route.admin_distance == 0

    def test_entries_sorted_and_normalized(self, bus):
        table = RoutingTable("R1", bus)
        table.add_static_route("0.0.0.0", "0.0.0.0", "10.0.0.254")
        table.add_connected_route("10.1.2.1", MASK, "g0")
        table.add_static_route("10.1.2.128", "255.255.255.128", "10.0.0.2")

        prefixes = [r.prefix_length for r in table.entries()]

        assert prefixes == [25, 24, 0]
        assert table.entries()[1].network == "10.1.2.0"

    def test_duplicates_are_rejected(self, bus):
        table = RoutingTable("R1", bus)
        assert table.add_connected_route("10.1.2.1", MASK, "g0") is not None
        assert table.add_connected_route("10.1.2.200", MASK, "g1") is None
        assert table.add_static_route("10.9.0.0", MASK, "10.1.2.2") is not None
        assert table.add_static_route("10.9.0.0", MASK, "10.1.2.2") is None
        assert len(table) == 2

    def test_no_match(self, bus):
        table = RoutingTable("R1", bus)
        table.add_connected_route("10.1.2.1", MASK, "g0")

        assert table.lookup("172.16.0.1") is None
        assert table.lookup("not-an-ip") is None

    def test_remove_route(self, bus):
        table = RoutingTable("R1", bus)
        table.add_static_route("10.9.0.0", MASK, "10.1.2.2")

        assert table.remove_route("10.9.0.77", MASK)
        assert not table.remove_route("10.9.0.0", MASK)
        assert not table.has_default_route()

    def test_route_str(self, bus):
        table = RoutingTable("R1", bus)
        route = table.add_static_route("10.9.0.0", MASK, "10.1.2.2")

        assert str(route) == "S 10.9.0.0/24 [1/0] via 10.1.2.2"


class TestVirtualConfig:
    def test_startup_is_a_snapshot(self):
        config = VirtualConfig()
        config.set("hostname", "R1")
        config.save_to_startup()
        config.set("hostname", "R9")

        assert config.startup == {"hostname": "R1"}
        config.load_from_startup()
        assert config.get("hostname") == "R1"

    def test_export_running_config(self):
        config = VirtualConfig()
        config.set(
            "static_routes",
            [{"network": "10.0.2.0", "mask": MASK, "next_hop": "10.0.12.2"}],
        )
        interfaces = [
            NetworkInterface("g0", "00:00:00:00:00:01", name="Gi0/0", ip_config=IpConfig("10.0.1.1", MASK)),
            NetworkInterface("g1", "00:00:00:00:00:02", name="Gi0/1", admin_up=False),
        ]

        lines = config.export_running_config("R1", interfaces)

        assert "hostname R1" in lines
        assert " ip address 10.0.1.1 255.255.255.0" in lines
        assert " shutdown" in lines
        assert "ip route 10.0.2.0 255.255.255.0 10.0.12.2" in lines
        assert lines[-1] == "end"


class TestDeviceStateManager:
    def test_get_or_create_is_idempotent(self, bus):
        manager = DeviceStateManager(bus, SimulationConfig(arp_timeout=42))
        state = manager.get_or_create("R1", DeviceType.ROUTER)

        assert manager.get_or_create("R1", DeviceType.ROUTER) is state
        assert state.arp_table.timeout == 42
        assert "R1" in manager
        assert manager.get("nope") is None

    def test_device_classification(self):
        assert DeviceStateManager.is_l3_device(DeviceType.PC)
        assert not DeviceStateManager.is_l3_device(DeviceType.SWITCH_L2)
        assert DeviceStateManager.is_switch(DeviceType.SWITCH_L3)
        assert DeviceStateManager.is_l3_device(DeviceType.SWITCH_L3)
        assert DeviceStateManager.is_router(DeviceType.FIREWALL)
        assert DeviceStateManager.is_end_host(DeviceType.SERVER)
        assert not DeviceStateManager.is_end_host(DeviceType.ROUTER)

    def test_age_all_counts_evictions(self, bus):
        manager = DeviceStateManager(bus, SimulationConfig(arp_timeout=5, cam_aging_time=5))
        manager.get_or_create("A", DeviceType.PC).arp_table.add(
            "10.0.0.1", "AA:AA:AA:AA:AA:01", "eth0", tick=0
        )
        manager.get_or_create("sw1", DeviceType.SWITCH_L2).cam_table.learn(
            "AA:AA:AA:AA:AA:01", "p1", tick=0
        )

        assert manager.age_all(10) == 2

    def test_serialize_and_reset(self, bus):
        manager = DeviceStateManager(bus)
        manager.get_or_create("R1", DeviceType.ROUTER).routing_table.add_connected_route(
            "10.0.1.1", MASK, "g0"
        )

        snapshot = manager.serialize()

        assert snapshot[0]["device_id"] == "R1"
        assert snapshot[0]["routing_table"][0]["route_type"] == "connected"
        manager.reset()
        assert len(manager) == 0


def test_aging_evicts_exactly_once(bus, table_events):
    table = ArpTable("A", bus, timeout=5)
    table.add("10.0.0.1", "AA:AA:AA:AA:AA:01", "eth0", tick=0)

    table.age(3)
    table.age(10)
    table.age(20)

    timeouts = [e for e in table_events if e.action is TableAction.TIMEOUT]
    assert len(timeouts) == 1


def test_slash_24_beats_slash_8(bus):
    table = RoutingTable("R1", bus)
    table.add_static_route("10.0.0.0", "255.0.0.0", "192.168.0.1")
    table.add_static_route("10.0.0.0", MASK, "192.168.0.2")

    assert table.lookup("10.0.0.5").prefix_length == 24

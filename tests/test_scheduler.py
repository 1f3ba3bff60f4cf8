import pytest
import simpy

from netlab_sim.config import SimulationConfig
from netlab_sim.core.enums import ScheduledEventType, SimEvent, SimulationSpeed
from netlab_sim.core.scheduler import PacketScheduler


@pytest.fixture
def scheduler(bus):
    return PacketScheduler(bus, SimulationConfig())


def test_events_fire_on_their_tick_in_fifo_order(scheduler):
    first = scheduler.schedule(ScheduledEventType.PACKET_FORWARD, 2, data={"n": 1})
    later = scheduler.schedule(ScheduledEventType.PACKET_FORWARD, 3, data={"n": 3})
    second = scheduler.schedule(ScheduledEventType.PACKET_FORWARD, 2, data={"n": 2})

    assert scheduler.tick() == []
    assert [e.id for e in scheduler.tick()] == [first, second]
    assert [e.id for e in scheduler.tick()] == [later]
    assert scheduler.is_empty()


def test_delay_must_be_positive(scheduler):
    with pytest.raises(ValueError):
        scheduler.schedule(ScheduledEventType.PACKET_FORWARD, 0)


def test_packet_forward_uses_hop_delay(scheduler):
    scheduler.schedule_packet_forward(None, {"target_device_id": "B"})
    event = scheduler.pending()[0]

    assert event.scheduled_tick == 8
    assert event.data == {"target_device_id": "B"}


def test_hop_delay_is_independent_of_speed(bus):
    config = SimulationConfig(speed=SimulationSpeed.SLOW)
    scheduler = PacketScheduler(bus, config)
    scheduler.schedule_packet_forward(None)
    scheduler.set_speed(SimulationSpeed.FAST)
    scheduler.schedule_packet_forward(None)

    assert [e.scheduled_tick for e in scheduler.pending()] == [8, 8]


def test_cancel_removes_event(scheduler):
    event_id = scheduler.schedule(ScheduledEventType.ARP_TIMEOUT, 1)

    assert scheduler.cancel(event_id)
    assert not scheduler.cancel(event_id)
    assert scheduler.tick() == []


def test_tick_publishes_tick_event(scheduler, bus):
    ticks = []
    bus.subscribe(SimEvent.SIM_TICK, lambda event: ticks.append(event.tick))

    scheduler.tick()
    scheduler.tick()

    assert ticks == [1, 2]


def test_reset_rewinds_clock(scheduler, bus):
    resets = []
    bus.subscribe(SimEvent.SIM_RESET, resets.append)
    scheduler.schedule(ScheduledEventType.PACKET_FORWARD, 4)
    scheduler.tick()

    scheduler.reset()

    assert scheduler.current_tick == 0
    assert scheduler.queue_length() == 0
    assert resets == [None]


def test_speed_scales_presentation_only(scheduler):
    scheduler.set_speed(SimulationSpeed.SLOW)
    assert scheduler.tick_interval_ms() == 300
    assert scheduler.animation_duration_ms() == 2400

    scheduler.set_speed(SimulationSpeed.INSTANT)
    assert scheduler.tick_interval_ms() == 10.0


def test_start_ticks_on_simpy_clock(scheduler):
    env = simpy.Environment()
    seen = []

    def on_tick(events):
        seen.append(scheduler.current_tick)
        if scheduler.current_tick == 3:
            scheduler.pause()

    scheduler.start(env, on_tick)
    env.run(until=10)

    assert seen == [1, 2, 3]
    assert not scheduler.running
    assert env.now == 10

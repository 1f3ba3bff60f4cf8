"""Enumerations for network simulation.

This module defines enumerations used throughout the protocol simulator.
"""

from enum import Enum


class DeviceType(Enum):
    """Enum for the device kinds a topology may contain."""

    ROUTER = "router"
    SWITCH_L2 = "switch-l2"
    SWITCH_L3 = "switch-l3"
    ACCESS_POINT = "access-point"
    PC = "pc"
    LAPTOP = "laptop"
    IP_PHONE = "ip-phone"
    SERVER = "server"
    PRINTER = "printer"
    ISP = "isp"
    CLOUD = "cloud"
    FIREWALL = "firewall"
    SMART_TV = "smart-tv"
    SMART_SPEAKER = "smart-speaker"
    SMART_LIGHT = "smart-light"
    SECURITY_CAMERA = "security-camera"
    ROBOT_VACUUM = "robot-vacuum"
    SMART_THERMOSTAT = "smart-thermostat"
    GAME_CONSOLE = "game-console"
    STREAMING_BOX = "streaming-box"


class DeviceStatus(Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class LinkStatus(Enum):
    UP = "up"
    DOWN = "down"


class Protocol(Enum):
    """Enum for the protocol tag carried by every packet.

    Attributes:
        ARP: Address resolution (EtherType 0x0806).
        ICMP: Control messages over IPv4 (EtherType 0x0800).
    """

    ARP = "ARP"
    ICMP = "ICMP"


class PacketKind(Enum):
    """Enum for packet subtypes."""

    ARP_REQUEST = "arp-request"
    ARP_REPLY = "arp-reply"
    ICMP_ECHO_REQUEST = "icmp-echo-request"
    ICMP_ECHO_REPLY = "icmp-echo-reply"
    ICMP_UNREACHABLE = "icmp-unreachable"
    ICMP_TTL_EXCEEDED = "icmp-ttl-exceeded"


class ArpOperation(Enum):
    REQUEST = "request"
    REPLY = "reply"


class IcmpType(Enum):
    ECHO_REQUEST = "echo-request"
    ECHO_REPLY = "echo-reply"
    UNREACHABLE = "unreachable"
    TTL_EXCEEDED = "ttl-exceeded"


class RouteType(Enum):
    """Enum for routing table entry types.

    Attributes:
        CONNECTED: Generated from an addressed, enabled interface.
        STATIC: Configured explicitly (or synthesized from a gateway).
    """

    CONNECTED = "connected"
    STATIC = "static"

    @property
    def code(self) -> str:
        """Single-letter code used by ``show ip route``."""
        return "C" if self is RouteType.CONNECTED else "S"


class TableType(Enum):
    ARP = "arp"
    CAM = "cam"
    ROUTE = "route"


class TableAction(Enum):
    ADD = "add"
    REMOVE = "remove"
    UPDATE = "update"
    TIMEOUT = "timeout"


class SimEvent(Enum):
    """Enum for every event type published on the event bus."""

    PACKET_CREATED = "packet:created"
    PACKET_MOVE = "packet:move"
    PACKET_ARRIVE = "packet:arrive"
    PACKET_DROP = "packet:drop"
    PACKET_INSPECT = "packet:inspect"
    TABLE_ARP_UPDATE = "table:arp-update"
    TABLE_CAM_UPDATE = "table:cam-update"
    TABLE_ROUTE_UPDATE = "table:route-update"
    SIM_TICK = "sim:tick"
    SIM_START = "sim:start"
    SIM_PAUSE = "sim:pause"
    SIM_RESET = "sim:reset"
    SIM_COMPLETE = "sim:complete"
    SIM_SPEED_CHANGE = "sim:speed-change"
    PORT_STATUS_CHANGE = "port:status-change"
    ANNOUNCE = "announce"
    CONSOLE_LOG = "console:log"
    CONSOLE_WARN = "console:warn"
    CONSOLE_ERROR = "console:error"


class DropReason(Enum):
    NO_ROUTE = "no-route"
    TTL_EXPIRED = "ttl-expired"
    PORT_DOWN = "port-down"
    NO_ARP_REPLY = "no-arp-reply"
    UNREACHABLE = "unreachable"
    NO_INTERFACE = "no-interface"
    LOOP_DETECTED = "loop-detected"
    NO_IP_CONFIG = "no-ip-config"


class LogLevel(Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    SUCCESS = "success"


class SimulationSpeed(Enum):
    """Enum for presentation speeds.

    The multiplier scales the wall-clock tick interval and the animation
    duration only; protocol timing is always counted in ticks.
    """

    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"
    INSTANT = "instant"

    @property
    def multiplier(self) -> float:
        return _SPEED_MULTIPLIERS[self.value]


_SPEED_MULTIPLIERS = {
    "slow": 3.0,
    "normal": 1.0,
    "fast": 0.3,
    "instant": 0.01,
}


class ScheduledEventType(Enum):
    PACKET_FORWARD = "packet-forward"
    ARP_TIMEOUT = "arp-timeout"


class SwitchAction(Enum):
    FORWARD = "forward"
    FLOOD = "flood"
    DROP = "drop"
    FILTER = "filter"


class RunState(Enum):
    """Enum for the orchestrator's ping state machine.

    Attributes:
        IDLE: No ping in progress.
        RESOLVING: Waiting on at least one address resolution.
        FORWARDING: Packets are moving hop by hop.
        DELIVERED: The echo reply reached the original sender.
        FAILED: Configuration, topology or protocol-terminal failure.
        TIMED_OUT: The hard tick ceiling was exceeded.
    """

    IDLE = 1
    RESOLVING = 2
    FORWARDING = 3
    DELIVERED = 4
    FAILED = 5
    TIMED_OUT = 6

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.DELIVERED, RunState.FAILED, RunState.TIMED_OUT)

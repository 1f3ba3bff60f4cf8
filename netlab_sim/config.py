"""Simulation configuration.

Defaults mirror the scheduler presets of the classroom simulator; a JSON
file can override any of them.
"""

import json
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from netlab_sim.core.enums import SimulationSpeed


@dataclass
class SimulationConfig:
    """Engine configuration.

    Attributes:
        base_latency_ms: Nominal per-hop latency used to derive hop ticks.
        tick_interval_ms: Wall-clock length of one tick at normal speed.
        speed: Presentation speed (slow, normal, fast, instant).
        default_ttl: TTL given to new echo requests.
        arp_timeout: Ticks before a dynamic ARP entry expires.
        arp_reply_timeout: Ticks a pending resolution waits for its reply.
        cam_aging_time: Ticks before a CAM entry expires.
        max_ticks: Hard tick ceiling for a single ping.
        aging_interval: Table aging runs every this many ticks.
        event_log_size: Capacity of the event bus ring buffer.
    """

    base_latency_ms: float = 800
    tick_interval_ms: float = 100
    speed: SimulationSpeed = SimulationSpeed.NORMAL
    default_ttl: int = 64
    arp_timeout: int = 300
    arp_reply_timeout: int = 100
    cam_aging_time: int = 300
    max_ticks: int = 500
    aging_interval: int = 10
    event_log_size: int = 500

    def __post_init__(self):
        if isinstance(self.speed, str):
            self.speed = SimulationSpeed(self.speed)
        if self.tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be positive")
        if self.max_ticks < 1:
            raise ValueError("max_ticks must be at least 1")
        if self.aging_interval < 1:
            raise ValueError("aging_interval must be at least 1")
        if self.arp_reply_timeout < 1:
            raise ValueError("arp_reply_timeout must be at least 1")

    @property
    def hop_delay_ticks(self) -> int:
        """Ticks a packet spends on one link."""
        return max(1, math.ceil(self.base_latency_ms / self.tick_interval_ms))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["speed"] = self.speed.value
        return data


def load_config(config_path: Optional[str] = None, **overrides: Any) -> SimulationConfig:
    """Load simulation configuration from a JSON file.

    Args:
        config_path: Optional path to a JSON config. When omitted, defaults
            are used.
        **overrides: Values that take precedence over the file.

    Returns:
        The resulting SimulationConfig.

    Raises:
        ValueError: If the file or overrides contain unknown keys.
    """
    values: Dict[str, Any] = {}
    if config_path:
        with Path(config_path).open("r", encoding="utf-8") as f:
            values.update(json.load(f))
    values.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(SimulationConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
    return SimulationConfig(**values)

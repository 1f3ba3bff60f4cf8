"""Reporting utilities for network simulation.

This module provides functions for turning a SimulationSummary and the
device tables into plain dictionaries, JSON files and printable text.
"""

import json
import os
from typing import Any, Dict, List, Optional

from netlab_sim.core.device_state import DeviceStateManager
from netlab_sim.core.events import SimulationSummary
from netlab_sim.core.topology import Topology


def summary_to_dict(
    summary: SimulationSummary, include_logs: bool = True
) -> Dict[str, Any]:
    """Convert a summary into JSON-serializable form.

    Args:
        summary: Outcome of a ping run.
        include_logs: Whether to keep the console lines.

    Returns:
        A dictionary of plain values.
    """
    data = summary.to_dict()
    if not include_logs:
        data.pop("logs")
    return data


def save_summary_to_json(
    summary: SimulationSummary,
    filename: str = "results/summary.json",
    device_states: Optional[DeviceStateManager] = None,
) -> None:
    """Save a summary (and optionally every device's tables) to a JSON file.

    Args:
        summary: Outcome of a ping run.
        filename: Output filename.
        device_states: When given, the table snapshot is stored under
            ``device_tables``.
    """
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    data = summary_to_dict(summary)
    if device_states is not None:
        data["device_tables"] = device_states.serialize()

    with open(filename, "w") as f:
        json.dump(data, f, indent=2)


def format_summary(summary: SimulationSummary) -> str:
    """Render a summary the way ``ping`` prints its statistics."""
    lines = [
        f"Result:            {'SUCCESS' if summary.success else 'FAILED'} ({summary.state.name})",
        f"Ticks:             {summary.total_ticks}",
        f"Simulated latency: {summary.total_latency_ms:.0f} ms",
        f"Packets created:   {summary.total_packets}",
        f"Packets delivered: {summary.delivered_packets}",
        f"Packets dropped:   {summary.dropped_packets}",
        f"Path:              {' -> '.join(summary.path) if summary.path else '-'}",
    ]
    if summary.errors:
        lines.append("Errors:")
        lines.extend(f"  - {error}" for error in summary.errors)
    return "\n".join(lines)


def format_device_tables(
    device_states: DeviceStateManager, topology: Topology
) -> str:
    """Render the ARP, CAM and routing tables of every device.

    Empty tables are skipped.
    """
    sections: List[str] = []
    for device in topology:
        state = device_states.get(device.id)
        if state is None:
            continue

        lines = [f"=== {device.label} ({device.device_type.value}) ==="]
        arp = state.arp_table.entries()
        if arp:
            lines.append("ARP table:")
            for entry in arp:
                kind = "static" if entry.is_static else "dynamic"
                lines.append(
                    f"  {entry.ip_address:<16} {entry.mac_address:<18} {entry.interface_id:<10} {kind}"
                )
        cam = state.cam_table.entries()
        if cam:
            lines.append("MAC address table:")
            for entry in cam:
                lines.append(f"  {entry.mac_address:<18} {entry.interface_id}")
        routes = state.routing_table.entries()
        if routes:
            lines.append("Routing table:")
            lines.extend(f"  {route}" for route in routes)

        if len(lines) > 1:
            sections.append("\n".join(lines))
    return "\n\n".join(sections)

import argparse
import json
import logging

from netlab_sim.config import load_config
from netlab_sim.core.enums import SimulationSpeed
from netlab_sim.core.orchestrator import SimulationOrchestrator
from netlab_sim.core.topology import Topology
from netlab_sim.utils.reporting import (
    format_device_tables,
    format_summary,
    save_summary_to_json,
)


def load_topology(filename):
    """
    Load a topology from a JSON file

    Args:
        filename: Path to the topology file

    Returns:
        The Topology described by the file
    """
    with open(filename, "r") as f:
        return Topology.from_dict(json.load(f))


def run_ping(args):
    """Run one ping described by the command line arguments"""
    config = load_config(args.config, speed=args.speed, max_ticks=args.max_ticks)
    topology = load_topology(args.topology)

    orchestrator = SimulationOrchestrator(config=config)
    orchestrator.initialize(topology)

    print(f"\n=== Ping {args.source} -> {args.target} ===")
    summary = orchestrator.execute_ping(args.source, args.target, ttl=args.ttl)

    for log in summary.logs:
        print(log)
    print()
    print(format_summary(summary))

    if args.tables:
        print()
        print(format_device_tables(orchestrator.device_states, topology))

    if args.output:
        save_summary_to_json(summary, args.output, orchestrator.device_states)
        print(f"\nSummary saved to {args.output}")

    return summary


def main():
    """Main function to run a ping simulation"""
    parser = argparse.ArgumentParser(description="ARP / ICMP / switching / routing simulator")
    parser.add_argument("topology", help="Topology JSON file")
    parser.add_argument("--source", required=True, help="Id of the device sending the ping")
    parser.add_argument("--target", required=True, help="Id of the device being pinged")
    parser.add_argument("--ttl", type=int, default=None, help="Initial TTL of the echo request")
    parser.add_argument(
        "--speed",
        choices=[speed.value for speed in SimulationSpeed],
        default=None,
        help="Presentation speed",
    )
    parser.add_argument("--max-ticks", type=int, default=None, help="Hard tick limit")
    parser.add_argument("--config", default=None, help="Simulation config JSON file")
    parser.add_argument("--output", default=None, help="Write the summary to this JSON file")
    parser.add_argument("--tables", action="store_true", help="Print device tables after the run")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    summary = run_ping(args)
    raise SystemExit(0 if summary.success else 1)


if __name__ == "__main__":
    main()

"""Discrete-event simulator for ARP, ICMP, Layer-2 switching and static routing.

The SimulationOrchestrator drives a single ping across a Topology, one tick
at a time, and reports the outcome as a SimulationSummary.
"""

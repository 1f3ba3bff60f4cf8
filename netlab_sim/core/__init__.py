"""Core components for network simulation.

This module contains the fundamental classes of the simulator, including
Packet, Topology, PacketScheduler, EventBus, the device tables and the
SimulationOrchestrator.
"""

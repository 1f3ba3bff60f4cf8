"""Protocol services for network simulation.

This module provides the ARP, ICMP, switching and routing logic. Each
service takes a decision for one device and returns it together with the
packets and console lines it produced.
"""

"""IPv4 helpers for network simulation.

Addresses are handled as dotted-quad strings throughout the simulator and
converted to 32-bit integers only for masking arithmetic.
"""

import ipaddress
from typing import Optional

BROADCAST_MAC = "FF:FF:FF:FF:FF:FF"
ZERO_MAC = "00:00:00:00:00:00"
ANY_IP = "0.0.0.0"


def is_valid_ip(address: Optional[str]) -> bool:
    """Check whether a string is a dotted-quad IPv4 address.

    Args:
        address: Candidate address.

    Returns:
        True if the address parses as IPv4, False otherwise.
    """
    if not address:
        return False
    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return True


def is_valid_mask(mask: Optional[str]) -> bool:
    """Check whether a string is a contiguous IPv4 subnet mask."""
    if not is_valid_ip(mask):
        return False
    inverted = ~ip_to_int(mask) & 0xFFFFFFFF
    return inverted & (inverted + 1) == 0


def ip_to_int(address: str) -> int:
    """Convert a dotted-quad address to a 32-bit integer.

    Invalid input converts to 0, so it can only ever match a /0 route.
    """
    if not is_valid_ip(address):
        return 0
    return int(ipaddress.IPv4Address(address))


def int_to_ip(value: int) -> str:
    return str(ipaddress.IPv4Address(value & 0xFFFFFFFF))


def network_address(address: str, mask: str) -> str:
    """Calculate the network address for an address/mask pair.

    Args:
        address: Host or network address.
        mask: Subnet mask.

    Returns:
        The normalized network address.
    """
    return int_to_ip(ip_to_int(address) & ip_to_int(mask))


def mask_to_prefix(mask: str) -> int:
    return bin(ip_to_int(mask)).count("1")


def in_network(address: str, network: str, mask: str) -> bool:
    """Check whether an address falls inside ``network/mask``."""
    mask_int = ip_to_int(mask)
    return ip_to_int(address) & mask_int == ip_to_int(network) & mask_int


def same_subnet(ip1: str, mask1: str, ip2: str, mask2: str) -> bool:
    """Check whether two addresses share a subnet under identical masks."""
    if not all(is_valid_ip(value) for value in (ip1, mask1, ip2, mask2)):
        return False
    return mask1 == mask2 and network_address(ip1, mask1) == network_address(
        ip2, mask2
    )

"""
PyHeaderBlock IP Allowlist

Client address matching against the configured network ranges.
"""

import ipaddress
from typing import Optional, Sequence, Tuple, Union

from .rules import IPNetwork


IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def split_host_port(remote_addr: str) -> str:
    """Strip a port suffix from a remote address.

    ``10.1.1.1:1234`` and ``[::1]:1234`` lose their port. Anything else,
    including a bare IPv6 address, is returned unchanged.
    """
    if remote_addr.startswith("["):
        end = remote_addr.find("]")
        if end != -1 and remote_addr[end + 1:end + 2] == ":":
            return remote_addr[1:end]
        return remote_addr

    if remote_addr.count(":") == 1:
        return remote_addr.split(":", 1)[0]

    return remote_addr


def parse_client_ip(remote_addr: Optional[str]) -> Optional[IPAddress]:
    """Parse the client address, ``None`` when it is not an IP"""
    if not remote_addr:
        return None
    try:
        return ipaddress.ip_address(split_host_port(remote_addr.strip()))
    except ValueError:
        return None


class IPAllowlist:
    """Set of network ranges a client address must fall into"""

    def __init__(self, networks: Sequence[IPNetwork] = ()):
        self.networks: Tuple[IPNetwork, ...] = tuple(networks)

    def __bool__(self) -> bool:
        return bool(self.networks)

    def __len__(self) -> int:
        return len(self.networks)

    @property
    def enabled(self) -> bool:
        return bool(self.networks)

    def contains(self, address: Optional[IPAddress]) -> bool:
        """Check whether a parsed address falls in any range"""
        if address is None:
            return False

        candidates = [address]
        if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
            candidates.append(address.ipv4_mapped)

        for network in self.networks:
            for candidate in candidates:
                if candidate in network:
                    return True
        return False

    def is_allowed(self, client_address: Optional[str]) -> bool:
        """Check a raw remote address; always True when the allowlist is empty"""
        if not self.networks:
            return True
        return self.contains(parse_client_ip(client_address))

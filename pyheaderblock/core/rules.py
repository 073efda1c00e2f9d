"""
PyHeaderBlock Rule Compiler

Turns raw configuration into immutable, matchable rules: header rules become
pairs of compiled regular expressions, allowlist entries become normalized
IP networks.
"""

import re
import ipaddress
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple, Union

from .config import HeaderRuleConfig
from .exceptions import ConfigurationError, ErrorCode


IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


@dataclass(frozen=True)
class Rule:
    """Compiled header rule. A missing pattern is ``None``."""
    name: Optional[Pattern[str]] = None
    value: Optional[Pattern[str]] = None

    def is_empty(self) -> bool:
        return self.name is None and self.value is None

    def describe(self) -> str:
        name = self.name.pattern if self.name is not None else "*"
        value = self.value.pattern if self.value is not None else "*"
        return f"{name}={value}"


def _compile_pattern(pattern: str, section: str) -> Optional[Pattern[str]]:
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigurationError(
            f"{section}: invalid regular expression {pattern!r}: {e}",
            config_section=section,
            pattern=pattern,
            error_code=ErrorCode.RULE_INVALID,
            cause=e
        )


def compile_rules(
    configs: Iterable[HeaderRuleConfig],
    section: str = "requestHeaders"
) -> Tuple[Rule, ...]:
    """Compile header rule configs into a rule set, preserving order.

    Raises ConfigurationError on the first pattern that does not compile.
    """
    rules = []
    for config in configs:
        rules.append(Rule(
            name=_compile_pattern(config.name, section),
            value=_compile_pattern(config.value, section),
        ))
    return tuple(rules)


def split_entries(raw: Iterable[str]) -> List[str]:
    """Flatten comma-separated allowlist strings into trimmed, non-empty entries"""
    entries = []
    for item in raw:
        for part in item.split(","):
            entry = part.strip()
            if entry:
                entries.append(entry)
    return entries


def parse_network(entry: str) -> Optional[IPNetwork]:
    """Parse a CIDR or a bare IP; bare IPs become /32 or /128 networks.

    Only a decimal prefix length is accepted after the slash, netmask
    notation such as ``10.0.0.0/255.0.0.0`` is rejected. A bare
    IPv4-mapped address (``::ffff:10.0.0.1``) becomes an IPv4 /32.
    """
    if "/" in entry:
        _, _, prefix = entry.partition("/")
        if not (prefix.isascii() and prefix.isdigit()):
            return None
        try:
            return ipaddress.ip_network(entry, strict=False)
        except ValueError:
            return None

    try:
        address = ipaddress.ip_address(entry)
    except ValueError:
        return None
    if address.version == 6 and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return ipaddress.ip_network((address, address.max_prefixlen))


def parse_allowed_ips(
    raw: Sequence[str],
    log_enabled: bool = False,
    logger=None
) -> Tuple[IPNetwork, ...]:
    """Build the allowlist, skipping entries that are neither CIDR nor IP"""
    networks = []
    for entry in split_entries(raw):
        network = parse_network(entry)
        if network is None:
            if log_enabled and logger is not None:
                logger.warning("invalid allowedIP entry skipped", entry=entry)
            continue
        networks.append(network)
    return tuple(networks)


def invalid_allowed_ips(raw: Sequence[str]) -> List[str]:
    """Entries that parse_allowed_ips would skip"""
    return [entry for entry in split_entries(raw) if parse_network(entry) is None]

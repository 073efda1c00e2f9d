"""
PyHeaderBlock Header Rules

Block-rule matching and whitelist resolution for request headers.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .rules import Rule


_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789"
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
)


def canonical_header_name(name: str) -> str:
    """Canonical MIME form: ``x-forwarded-for`` -> ``X-Forwarded-For``.

    Names containing characters outside the HTTP token set are returned
    unchanged.
    """
    if not name or any(c not in _TOKEN_CHARS for c in name):
        return name
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def _any_value_matches(rule_value, values: Sequence[str]) -> bool:
    return any(rule_value.search(value) for value in values)


def should_block(name: str, values: Sequence[str], rule: Rule) -> bool:
    """Check one block rule against one header"""
    name_match = rule.name is not None and rule.name.search(name) is not None

    if rule.value is None:
        return name_match
    if name_match or rule.name is None:
        return _any_value_matches(rule.value, values)
    return False


def is_whitelisted(name: str, values: Sequence[str], whitelist: Iterable[Rule]) -> bool:
    """Check whether a blocked header is exempted by a whitelist rule"""
    for rule in whitelist:
        if rule.name is not None and rule.name.search(name) is None:
            continue

        if rule.value is None:
            return True

        if _any_value_matches(rule.value, values):
            return True
    return False


@dataclass
class HeaderScan:
    """Outcome of scanning a request's headers"""
    blocked: Optional[str] = None
    whitelisted: List[str] = field(default_factory=list)


def scan_headers(
    headers: Mapping[str, Sequence[str]],
    block_rules: Sequence[Rule],
    whitelist_rules: Sequence[Rule]
) -> HeaderScan:
    """Check every header against every block rule.

    Stops at the first header that matches a block rule and is not
    whitelisted. Headers that matched but were whitelisted are collected
    once per matching rule.
    """
    scan = HeaderScan()
    for name, values in headers.items():
        for rule in block_rules:
            if not should_block(name, values, rule):
                continue
            if is_whitelisted(name, values, whitelist_rules):
                scan.whitelisted.append(name)
                continue
            scan.blocked = name
            return scan
    return scan


def find_blocked_header(
    headers: Mapping[str, Sequence[str]],
    block_rules: Sequence[Rule],
    whitelist_rules: Sequence[Rule]
) -> Optional[str]:
    """Name of the first blocked, non-whitelisted header, if any"""
    return scan_headers(headers, block_rules, whitelist_rules).blocked


def group_headers(pairs: Iterable[Tuple[str, str]]) -> dict:
    """Group raw (name, value) pairs into a canonical-name multimap"""
    grouped = {}
    for name, value in pairs:
        grouped.setdefault(canonical_header_name(name), []).append(value)
    return {name: tuple(values) for name, values in grouped.items()}

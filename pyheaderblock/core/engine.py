"""
PyHeaderBlock Engine

Per-request decision: client IP against the allowlist, then request headers
against the block rules with whitelist override. The compiled rule set is
built once and shared read-only by every evaluation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union

import structlog

from .config import HeaderBlockConfig, create_config
from .exceptions import BlockedHeaderError, IPNotAllowedError
from .headers import canonical_header_name, group_headers, scan_headers
from .ipfilter import IPAllowlist
from .rules import Rule, compile_rules, parse_allowed_ips


HeaderInput = Union[Mapping[str, Union[str, Sequence[str]]], Iterable[Tuple[str, str]]]


class VerdictAction(str, Enum):
    """Engine actions"""
    ALLOW = "allow"
    DENY = "deny"


class DenyReason(str, Enum):
    """Why a request was denied"""
    IP_NOT_ALLOWED = "ip_not_allowed"
    BLOCKED_HEADER = "blocked_header"


@dataclass(frozen=True)
class DecisionContext:
    """Read-only view of one request"""
    client_address: Optional[str]
    headers: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    url: str = ""

    @classmethod
    def build(
        cls,
        client_address: Optional[str],
        headers: Optional[HeaderInput] = None,
        url: str = ""
    ) -> "DecisionContext":
        """Create a context from a mapping or from raw (name, value) pairs.

        Header names are folded to their canonical form so that differently
        cased names end up under one entry.
        """
        if headers is None:
            pairs = []
        elif isinstance(headers, Mapping):
            pairs = []
            for name, values in headers.items():
                if isinstance(values, str):
                    pairs.append((name, values))
                else:
                    pairs.extend((name, value) for value in values)
        else:
            pairs = list(headers)

        return cls(client_address=client_address, headers=group_headers(pairs), url=url)

    def get(self, name: str) -> Tuple[str, ...]:
        return self.headers.get(canonical_header_name(name), ())


@dataclass(frozen=True)
class Verdict:
    """Result of evaluating one request"""
    action: VerdictAction
    reason: Optional[DenyReason] = None
    header: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.action == VerdictAction.ALLOW

    def should_block(self) -> bool:
        return self.action == VerdictAction.DENY


ALLOW = Verdict(action=VerdictAction.ALLOW)


class HeaderBlockEngine:
    """Header and IP filter"""

    def __init__(self, config: Optional[HeaderBlockConfig] = None, logger=None):
        config = config or create_config()
        self.log_enabled = config.log
        self.logger = logger or structlog.get_logger("pyheaderblock")

        self.block_rules: Tuple[Rule, ...] = compile_rules(
            config.request_headers, section="requestHeaders"
        )
        self.whitelist_rules: Tuple[Rule, ...] = compile_rules(
            config.whitelist_request_headers, section="whitelistRequestHeaders"
        )
        self.allowlist = IPAllowlist(
            parse_allowed_ips(config.allowed_ips, self.log_enabled, self.logger)
        )

    @classmethod
    def from_config(cls, config: HeaderBlockConfig, logger=None) -> "HeaderBlockEngine":
        return cls(config, logger=logger)

    def evaluate(self, context: DecisionContext) -> Verdict:
        """Decide whether a request may pass"""
        if self.allowlist:
            if not self.allowlist.is_allowed(context.client_address):
                if self.log_enabled:
                    self.logger.warning(
                        "access denied - IP not allowed",
                        url=context.url,
                        client_ip=context.client_address
                    )
                return Verdict(action=VerdictAction.DENY, reason=DenyReason.IP_NOT_ALLOWED)

            # allowlisted clients skip header rules
            if self.log_enabled:
                self.logger.debug(
                    "access allowed - IP allowed",
                    url=context.url,
                    client_ip=context.client_address
                )
            return ALLOW

        if not self.block_rules:
            return ALLOW

        scan = scan_headers(context.headers, self.block_rules, self.whitelist_rules)
        if self.log_enabled:
            for name in scan.whitelisted:
                self.logger.info("access allowed - whitelisted header", url=context.url, header=name)

        if scan.blocked is not None:
            if self.log_enabled:
                self.logger.warning("access denied - blocked header", url=context.url, header=scan.blocked)
            return Verdict(
                action=VerdictAction.DENY,
                reason=DenyReason.BLOCKED_HEADER,
                header=scan.blocked
            )

        return ALLOW

    def enforce(self, context: DecisionContext) -> Verdict:
        """Like evaluate, but raise an AccessDeniedError on deny"""
        verdict = self.evaluate(context)
        if verdict.reason == DenyReason.IP_NOT_ALLOWED:
            raise IPNotAllowedError(client_ip=context.client_address, url=context.url)
        if verdict.reason == DenyReason.BLOCKED_HEADER:
            raise BlockedHeaderError(header=verdict.header, client_ip=context.client_address, url=context.url)
        return verdict

    def get_summary(self) -> dict:
        """Describe the compiled rule set"""
        return {
            "block_rules": [rule.describe() for rule in self.block_rules],
            "whitelist_rules": [rule.describe() for rule in self.whitelist_rules],
            "allowed_networks": [str(network) for network in self.allowlist.networks],
            "log": self.log_enabled
        }

"""
Tests for header rule matching and whitelist resolution
"""

from pyheaderblock.core.config import HeaderRuleConfig
from pyheaderblock.core.headers import (
    canonical_header_name, find_blocked_header, group_headers, is_whitelisted, scan_headers, should_block
)
from pyheaderblock.core.rules import Rule, compile_rules


def rule(name="", value=""):
    return compile_rules([HeaderRuleConfig(name=name, value=value)])[0]


class TestShouldBlock:
    """Single block rule against a single header"""

    def test_name_only_blocks_any_value(self):
        assert should_block("Cf-Ipcountry", ("VN",), rule(name="Cf-Ipcountry"))
        assert should_block("Cf-Ipcountry", ("",), rule(name="Cf-Ipcountry"))

    def test_name_only_ignores_other_headers(self):
        assert not should_block("User-Agent", ("Cf-Ipcountry",), rule(name="Cf-Ipcountry"))

    def test_value_only_applies_to_every_header(self):
        assert should_block("Any-Header", ("evil-content",), rule(value="evil"))
        assert not should_block("Any-Header", ("benign",), rule(value="evil"))

    def test_name_and_value_gate_together(self):
        combined = rule(name="^X-.*", value="forbidden|blocked")

        assert should_block("X-Custom", ("blocked-value",), combined)
        assert not should_block("X-Custom", ("fine",), combined)
        assert not should_block("Other", ("blocked-value",), combined)

    def test_any_of_multiple_values(self):
        assert should_block("Accept", ("text/html", "evil/type"), rule(value="evil"))

    def test_empty_rule_never_matches(self):
        assert not should_block("X-Anything", ("anything",), Rule())

    def test_patterns_search_anywhere(self):
        assert should_block("User-Agent", ("Mozilla/5.0 Googlebot/2.1",), rule(name="Agent", value="Googlebot"))


class TestIsWhitelisted:
    """Whitelist resolution for a blocked header"""

    def test_value_scoped_whitelist(self):
        whitelist = [rule(name="Cf-Ipcountry", value="VN")]

        assert is_whitelisted("Cf-Ipcountry", ("VN",), whitelist)
        assert not is_whitelisted("Cf-Ipcountry", ("FR",), whitelist)

    def test_name_only_whitelist_is_unconditional(self):
        assert is_whitelisted("X-Internal", ("whatever",), [rule(name="X-Internal")])

    def test_value_only_whitelist(self):
        assert is_whitelisted("Any", ("trusted",), [rule(value="trusted")])
        assert not is_whitelisted("Any", ("other",), [rule(value="trusted")])

    def test_other_names_are_skipped(self):
        whitelist = [rule(name="X-Other"), rule(name="Cf-Ipcountry", value="DE")]

        assert not is_whitelisted("Cf-Ipcountry", ("VN",), whitelist)
        assert is_whitelisted("Cf-Ipcountry", ("DE",), whitelist)

    def test_rule_without_patterns_whitelists(self):
        assert is_whitelisted("Anything", ("x",), [Rule()])

    def test_empty_whitelist(self):
        assert not is_whitelisted("Cf-Ipcountry", ("VN",), [])


class TestScanHeaders:
    """Headers x block rules"""

    def test_first_blocked_header_is_reported(self):
        headers = {"User-Agent": ("Mozilla",), "X-Test": ("blocked",)}

        assert find_blocked_header(headers, [rule(name="X-Test")], []) == "X-Test"

    def test_whitelisted_header_does_not_stop_scan(self):
        headers = {"Cf-Ipcountry": ("VN",), "X-Bad": ("1",)}
        block = [rule(name="Cf-Ipcountry"), rule(name="X-Bad")]
        whitelist = [rule(name="Cf-Ipcountry", value="VN")]

        scan = scan_headers(headers, block, whitelist)

        assert scan.whitelisted == ["Cf-Ipcountry"]
        assert scan.blocked == "X-Bad"

    def test_whitelist_applies_to_its_own_header_only(self):
        headers = {"Cf-Ipcountry": ("VN",), "X-Country": ("FR",)}
        block = [rule(value="VN|FR")]
        whitelist = [rule(name="Cf-Ipcountry", value="VN")]

        assert find_blocked_header(headers, block, whitelist) == "X-Country"

    def test_outcome_is_order_independent(self):
        block = [rule(name="X-A"), rule(name="X-B")]
        whitelist = [rule(name="X-A")]
        forward = {"X-A": ("1",), "X-B": ("2",)}
        backward = {"X-B": ("2",), "X-A": ("1",)}

        assert find_blocked_header(forward, block, whitelist) == "X-B"
        assert find_blocked_header(backward, block, whitelist) == "X-B"

    def test_no_rules(self):
        assert find_blocked_header({"X-A": ("1",)}, [], []) is None


class TestHeaderNames:
    """Canonical header names"""

    def test_canonical_form(self):
        assert canonical_header_name("cf-ipcountry") == "Cf-Ipcountry"
        assert canonical_header_name("USER-AGENT") == "User-Agent"
        assert canonical_header_name("x-forwarded-for") == "X-Forwarded-For"

    def test_non_token_names_are_unchanged(self):
        assert canonical_header_name("bad header") == "bad header"

    def test_group_headers_merges_case_variants(self):
        grouped = group_headers([("accept", "a"), ("Accept", "b"), ("x-one", "1")])

        assert grouped == {"Accept": ("a", "b"), "X-One": ("1",)}

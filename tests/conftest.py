"""
Shared fixtures for PyHeaderBlock tests
"""

from unittest.mock import Mock

import pytest

from pyheaderblock.core.config import HeaderBlockConfig, HeaderRuleConfig
from pyheaderblock.core.engine import DecisionContext, HeaderBlockEngine


def rules(*pairs):
    """Build rule configs from (name, value) tuples"""
    return [HeaderRuleConfig(name=name, value=value) for name, value in pairs]


@pytest.fixture
def logger():
    return Mock()


@pytest.fixture
def make_engine(logger):
    def factory(block=(), whitelist=(), allowed_ips=(), log=True):
        config = HeaderBlockConfig(
            request_headers=rules(*block),
            whitelist_request_headers=rules(*whitelist),
            allowed_ips=list(allowed_ips),
            log=log,
        )
        return HeaderBlockEngine(config, logger=logger)
    return factory


@pytest.fixture
def request_context():
    def factory(headers=None, client_address="192.0.2.10:51000", url="http://testserver/test"):
        return DecisionContext.build(client_address=client_address, headers=headers, url=url)
    return factory

"""Shared test fixtures for EdgeStatus."""

import pytest
from loguru import logger

from edge_status.client import InMemoryControlPlaneClient
from edge_status.config import Settings
from edge_status.identity import IdentityRegistry

NOW = 1_700_000_000.0


def make_record(fingerprint="fp-alice", **overrides):
    record = {
        "name": "alice-laptop",
        "fingerprint": fingerprint,
        "active": True,
        "status": "Available",
        "controller": "https://ctrl.corp.io:1280",
        "controllerVersion": "v0.19.0",
        "mfaEnabled": True,
        "mfaNeeded": False,
        "minTimeout": 1260,
        "maxTimeout": 7200,
        "lastUpdated": NOW,
        "services": [
            {"name": "wiki", "id": "svc-1", "interceptHost": "wiki.corp", "interceptPort": 443, "timeoutRemaining": 30},
            {"name": "ssh", "id": "svc-2", "interceptHost": "bastion.corp", "interceptPort": 22, "timeoutRemaining": -1},
        ],
    }
    record.update(overrides)
    return record


@pytest.fixture
def raw_identity():
    return make_record()


@pytest.fixture
def client():
    return InMemoryControlPlaneClient(
        [
            make_record(),
            make_record(
                "fp-bob", name="bob-desktop", mfaEnabled=False, minTimeout=-1, maxTimeout=-1,
                services=[{"name": "nas", "id": "svc-3", "timeoutRemaining": 10}],
            ),
        ],
        mfa_codes={"fp-alice": "123456"},
    )


@pytest.fixture
def registry(client):
    reg = IdentityRegistry(client=client, settings=Settings())
    reg.refresh()
    yield reg
    reg.close()


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)

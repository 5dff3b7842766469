"""Shared helpers and fixtures for the validator service test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from flare_validators.models import RawValidatorRecord, Snapshot
from flare_validators.snapshot import build

T0 = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_record(**overrides: Any) -> RawValidatorRecord:
    """Return a fully eligible RawValidatorRecord, with *overrides* applied."""
    defaults: dict[str, Any] = dict(
        id=1,
        name="Validator One",
        node_id="NodeID-abc123",
        delegation_address="0x" + "11" * 20,
        ftso_anchor_feeds=True,
        ftso_block_latency_feeds=True,
        fdc=True,
        staking=True,
        passes=3,
        eligible_for_reward=True,
        primary=95,
        secondary=98,
        availability=9950,
        active=True,
        reward_rate_wnat=0.0010,
        reward_rate_mirror=0.0003,
        reward_rate_pure=0.0002,
        reward_rate_combined=0.0015,
    )
    defaults.update(overrides)
    return RawValidatorRecord(**defaults)


def make_entity(entity_id: int = 1, **overrides: Any) -> dict[str, Any]:
    """Return a raw upstream entity dict as served by ``/entity``."""
    entity: dict[str, Any] = {
        "id": entity_id,
        "display_name": f"Validator {entity_id}",
        "denormalizedentity": {
            "node_ids": [f"NodeID-{entity_id:04d}", "NodeID-secondary"],
            "public_key": None,
            "delegation_address": "0x" + "aa" * 20,
        },
        "entityminimalconditions": {
            "ftso_scaling": True,
            "ftso_fast_updates": True,
            "fdc": True,
            "staking": True,
            "passes_held": 3,
            "eligible_for_reward": True,
        },
        "rewards": {
            "reward_rate_wnat": 0.001,
            "reward_rate_mirror": 0.0005,
            "reward_rate_pure": 0.0002,
        },
        "providersuccessrate": {
            "primary": 97,
            "secondary": 99,
            "availability": 9875,
            "active": True,
        },
        "denormalizedsigningpolicy": {
            "delegation_address": "0x" + "bb" * 20,
        },
    }
    entity.update(overrides)
    return entity


def make_snapshot(records: list[RawValidatorRecord], taken_at: datetime = T0) -> Snapshot:
    return build(records, taken_at)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sample_snapshot() -> Snapshot:
    """Three validators: 42 and 9 eligible, 7 failing on passes."""
    return make_snapshot(
        [
            make_record(id=42, name="Alpha", reward_rate_combined=0.0018),
            make_record(id=7, name="Bravo", reward_rate_combined=0.0009, passes=2),
            make_record(id=9, name="Charlie", reward_rate_combined=0.0021),
        ]
    )

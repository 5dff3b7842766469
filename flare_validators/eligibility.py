"""Reward-eligibility rubric for Flare validators.

A validator is eligible for rewards only when every obligation is met:

* FTSO anchor feeds (``ftso_scaling`` upstream)
* FTSO block-latency feeds (``ftso_fast_updates`` upstream)
* FDC attestations
* staking
* upstream's own ``eligible_for_reward`` flag
* exactly ``REQUIRED_PASSES`` passes held

Evaluation is pure and total: absent booleans count as ``False``, an absent
``passes`` counts as ``0``, and an out-of-range ``passes`` is clamped into
``[MIN_PASSES, MAX_PASSES]`` with a data-quality warning.
"""

from __future__ import annotations

import logging

from flare_validators.models import Conditions, RawValidatorRecord

logger = logging.getLogger(__name__)

MIN_PASSES = 0
MAX_PASSES = 3
# Exact match, not a threshold.
REQUIRED_PASSES = 3


def clamp_passes(raw: int | None, validator_id: int | None = None) -> int:
    """Return *raw* clamped into the valid passes range, defaulting to 0."""
    if raw is None:
        return MIN_PASSES
    clamped = min(MAX_PASSES, max(MIN_PASSES, raw))
    if clamped != raw:
        logger.warning(
            "Data quality: validator id=%s reported passes=%d outside [%d, %d], clamped to %d",
            validator_id,
            raw,
            MIN_PASSES,
            MAX_PASSES,
            clamped,
        )
    return clamped


def evaluate(record: RawValidatorRecord) -> Conditions:
    """Map a raw record to its ``Conditions``."""
    return Conditions(
        ftso_anchor_feeds=bool(record.ftso_anchor_feeds),
        ftso_block_latency_feeds=bool(record.ftso_block_latency_feeds),
        fdc=bool(record.fdc),
        staking=bool(record.staking),
        passes=clamp_passes(record.passes, record.id),
        eligible_for_reward=bool(record.eligible_for_reward),
    )


def is_eligible(conditions: Conditions) -> bool:
    """True iff all five obligations hold and passes is exactly ``REQUIRED_PASSES``."""
    return (
        conditions.ftso_anchor_feeds
        and conditions.ftso_block_latency_feeds
        and conditions.fdc
        and conditions.staking
        and conditions.eligible_for_reward
        and conditions.passes == REQUIRED_PASSES
    )

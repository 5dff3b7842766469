"""Snapshot builder — raw records in, immutable classified listing out."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from flare_validators.eligibility import evaluate, is_eligible
from flare_validators.models import (
    ProviderStats,
    RawValidatorRecord,
    RewardRates,
    Snapshot,
    ValidatorView,
)

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"

# Upstream reports availability in hundredths of a percent.
_AVAILABILITY_SCALE = 100.0


def _provider_stats(record: RawValidatorRecord) -> ProviderStats:
    availability = None
    if record.availability is not None:
        availability = record.availability / _AVAILABILITY_SCALE
        if not 0.0 <= availability <= 100.0:
            logger.warning(
                "Data quality: validator id=%d availability=%.2f outside [0, 100], clamped",
                record.id,
                availability,
            )
            availability = min(100.0, max(0.0, availability))
    return ProviderStats(
        primary=record.primary,
        secondary=record.secondary,
        availability=availability,
        active=record.active,
    )


def _reward_rates(record: RawValidatorRecord) -> tuple[RewardRates, bool]:
    """Return the reward rates and whether ``combined`` had to be filled in.

    Upstream's combined figure is taken verbatim when present.
    """
    wnat = record.reward_rate_wnat or 0.0
    mirror = record.reward_rate_mirror or 0.0
    pure = record.reward_rate_pure or 0.0
    filled = record.reward_rate_combined is None
    combined = wnat + mirror + pure if filled else record.reward_rate_combined
    return RewardRates(wnat=wnat, mirror=mirror, pure=pure, combined=combined), filled


def build_view(record: RawValidatorRecord) -> tuple[ValidatorView, bool]:
    """Classify a single record.  See ``_reward_rates`` for the second element."""
    if record.name is None or (record.node_id is None and record.delegation_address is None):
        logger.warning(
            "Data quality: validator id=%d missing identity fields (name=%r node_id=%r delegation_address=%r)",
            record.id,
            record.name,
            record.node_id,
            record.delegation_address,
        )

    conditions = evaluate(record)
    reward_rates, filled = _reward_rates(record)
    view = ValidatorView(
        id=record.id,
        name=record.name if record.name is not None else UNKNOWN_NAME,
        node_id=record.node_id,
        delegation_address=record.delegation_address,
        conditions=conditions,
        eligible=is_eligible(conditions),
        provider_stats=_provider_stats(record),
        reward_rates=reward_rates,
    )
    return view, filled


def build(records: Iterable[RawValidatorRecord], now: datetime) -> Snapshot:
    """Build a snapshot stamped *now*, preserving input order.

    Every record is kept.  A duplicated id keeps its first occurrence and
    logs a data-quality warning.
    """
    views: list[ValidatorView] = []
    seen: set[int] = set()
    filled_count = 0

    for record in records:
        if record.id in seen:
            logger.warning("Data quality: duplicate validator id=%d ignored", record.id)
            continue
        seen.add(record.id)
        view, filled = build_view(record)
        views.append(view)
        filled_count += filled

    if filled_count:
        logger.info(
            "Upstream omitted the combined reward rate for %d/%d validators; "
            "filled with wnat + mirror + pure",
            filled_count,
            len(views),
        )

    eligible = sum(1 for v in views if v.eligible)
    logger.info(
        "Built snapshot: %d validators (%d eligible, %d ineligible) at %s",
        len(views),
        eligible,
        len(views) - eligible,
        now.isoformat(),
    )
    return Snapshot(taken_at=now, validators=tuple(views))

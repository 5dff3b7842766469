"""Pydantic models for Flare explorer responses and the served validator views.

Upstream models mirror the ``/entity`` payload of the Flare systems explorer
(snake_case, every nested block optional).  ``RawValidatorRecord`` is the
flattened, typed record the evaluator consumes; ``ValidatorView`` and
``Snapshot`` are what the API serves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Upstream — GET /entity
# ---------------------------------------------------------------------------

class FlareEntityMinConditions(BaseModel):
    """Minimal-conditions block of an entity."""

    ftso_scaling: bool | None = None
    ftso_fast_updates: bool | None = None
    fdc: bool | None = None
    staking: bool | None = None
    passes_held: int | None = None
    eligible_for_reward: bool | None = None


class FlareRewards(BaseModel):
    """Reward-rate block.  ``reward_rate`` is the combined figure when reported."""

    reward_rate_wnat: float | None = None
    reward_rate_mirror: float | None = None
    reward_rate_pure: float | None = None
    reward_rate: float | None = None


class FlareProviderSuccessRate(BaseModel):
    """Provider performance block.  ``availability`` is in hundredths of a percent."""

    primary: int | None = None
    secondary: int | None = None
    availability: float | None = None
    active: bool | None = None


class FlareDenormalizedEntity(BaseModel):
    node_ids: list[str] = Field(default_factory=list)
    public_key: str | None = None
    submit_address: str | None = None
    delegation_address: str | None = None


class FlareSigningPolicy(BaseModel):
    delegation_address: str | None = None


class FlareEntity(BaseModel):
    """A single row of the ``results`` array."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(gt=0)
    display_name: str | None = None
    denormalizedentity: FlareDenormalizedEntity | None = None
    entityminimalconditions: FlareEntityMinConditions | None = None
    rewards: FlareRewards | None = None
    providersuccessrate: FlareProviderSuccessRate | None = None
    denormalizedsigningpolicy: FlareSigningPolicy | None = None

    def to_record(self) -> RawValidatorRecord:
        """Flatten the nested upstream blocks into a ``RawValidatorRecord``."""
        cond = self.entityminimalconditions or FlareEntityMinConditions()
        rewards = self.rewards or FlareRewards()
        provider = self.providersuccessrate or FlareProviderSuccessRate()
        entity = self.denormalizedentity

        delegation = None
        if self.denormalizedsigningpolicy is not None:
            delegation = self.denormalizedsigningpolicy.delegation_address
        if delegation is None and entity is not None:
            delegation = entity.delegation_address

        return RawValidatorRecord(
            id=self.id,
            name=self.display_name,
            node_id=entity.node_ids[0] if entity and entity.node_ids else None,
            delegation_address=delegation,
            ftso_anchor_feeds=cond.ftso_scaling,
            ftso_block_latency_feeds=cond.ftso_fast_updates,
            fdc=cond.fdc,
            staking=cond.staking,
            passes=cond.passes_held,
            eligible_for_reward=cond.eligible_for_reward,
            primary=provider.primary,
            secondary=provider.secondary,
            availability=provider.availability,
            active=provider.active,
            reward_rate_wnat=rewards.reward_rate_wnat,
            reward_rate_mirror=rewards.reward_rate_mirror,
            reward_rate_pure=rewards.reward_rate_pure,
            reward_rate_combined=rewards.reward_rate,
        )


class FlareEntityList(BaseModel):
    results: list[FlareEntity]
    count: int | None = None
    next: str | None = None


# ---------------------------------------------------------------------------
# Raw record — evaluator input
# ---------------------------------------------------------------------------

class RawValidatorRecord(BaseModel):
    """One validator as fetched, before any derivation.

    Every condition, counter and figure is optional; the evaluator and
    snapshot builder own the defaulting rules.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str | None = None
    node_id: str | None = None
    delegation_address: str | None = None

    ftso_anchor_feeds: bool | None = None
    ftso_block_latency_feeds: bool | None = None
    fdc: bool | None = None
    staking: bool | None = None
    passes: int | None = None
    eligible_for_reward: bool | None = None

    primary: int | None = None
    secondary: int | None = None
    availability: float | None = None
    active: bool | None = None

    reward_rate_wnat: float | None = None
    reward_rate_mirror: float | None = None
    reward_rate_pure: float | None = None
    reward_rate_combined: float | None = None


# ---------------------------------------------------------------------------
# Served views
# ---------------------------------------------------------------------------

class Conditions(BaseModel):
    model_config = ConfigDict(frozen=True)

    ftso_anchor_feeds: bool = False
    ftso_block_latency_feeds: bool = False
    fdc: bool = False
    staking: bool = False
    passes: int = Field(default=0, ge=0, le=3)
    eligible_for_reward: bool = False


class ProviderStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary: int | None = None
    secondary: int | None = None
    availability: float | None = Field(default=None, ge=0.0, le=100.0)
    active: bool | None = None


class RewardRates(BaseModel):
    model_config = ConfigDict(frozen=True)

    wnat: float = 0.0
    mirror: float = 0.0
    pure: float = 0.0
    combined: float = 0.0


class ValidatorView(BaseModel):
    """A fully classified validator as served by the API."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    node_id: str | None = None
    delegation_address: str | None = None
    conditions: Conditions
    eligible: bool
    provider_stats: ProviderStats
    reward_rates: RewardRates


@dataclass(frozen=True)
class Snapshot:
    """Immutable, timestamped listing of validators in upstream arrival order."""

    taken_at: datetime
    validators: tuple[ValidatorView, ...] = field(default_factory=tuple)

    def age_seconds(self, now: datetime) -> float:
        return max(0.0, (now - self.taken_at).total_seconds())

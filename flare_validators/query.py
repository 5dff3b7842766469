"""Read queries over a snapshot.

Every function takes the snapshot explicitly (usually
``coordinator.current_snapshot()``) and raises ``SnapshotUnavailableError``
when there is none yet, so callers never mistake "no data" for "no
validators".
"""

from __future__ import annotations

from flare_validators.models import Snapshot, ValidatorView


class SnapshotUnavailableError(Exception):
    """Raised when no snapshot has been built yet."""

    def __init__(self, detail: str = "Validator data not yet available") -> None:
        self.detail = detail
        super().__init__(detail)


class ValidatorNotFoundError(LookupError):
    """Raised when a validator id is not present in the snapshot."""

    def __init__(self, validator_id: int) -> None:
        self.validator_id = validator_id
        super().__init__(f"Validator {validator_id} not found")


def _require(snapshot: Snapshot | None) -> Snapshot:
    if snapshot is None:
        raise SnapshotUnavailableError()
    return snapshot


def all_validators(snapshot: Snapshot | None) -> list[ValidatorView]:
    return list(_require(snapshot).validators)


def eligible(snapshot: Snapshot | None) -> list[ValidatorView]:
    return [v for v in _require(snapshot).validators if v.eligible]


def ineligible(snapshot: Snapshot | None) -> list[ValidatorView]:
    return [v for v in _require(snapshot).validators if not v.eligible]


def top_n(snapshot: Snapshot | None, n: int, eligible_only: bool = False) -> list[ValidatorView]:
    """Highest combined reward rate first, ties by ascending id, truncated to *n*.

    ``n <= 0`` yields an empty list; ``n`` beyond the population yields all
    of it.
    """
    pool = eligible(snapshot) if eligible_only else all_validators(snapshot)
    if n <= 0:
        return []
    ranked = sorted(pool, key=lambda v: (-v.reward_rates.combined, v.id))
    return ranked[:n]


def by_id(snapshot: Snapshot | None, validator_id: int) -> ValidatorView:
    for validator in _require(snapshot).validators:
        if validator.id == validator_id:
            return validator
    raise ValidatorNotFoundError(validator_id)

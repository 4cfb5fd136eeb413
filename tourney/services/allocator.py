"""Entry fee allocation across wallet buckets.

Pure and synchronous: given a required amount, a spend order and the current
bucket balances, compute how much to take from each bucket. Allocation is
all-or-nothing. Either the full amount is covered or InsufficientFundsError is
raised and no plan exists.

Example:
    >>> plan = allocate(60, ["winning", "bonus", "deposit"],
    ...                 {"deposit": 50, "winning": 30, "bonus": 0})
    >>> plan.as_dict()
    {'winning': 30, 'deposit': 30}
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from tourney.models.tournament import validate_priority
from tourney.models.wallet import Bucket
from tourney.utils.errors import InsufficientFundsError, InvalidRequestError


@dataclass(frozen=True)
class AllocationPlan:
    """Per-bucket deductions covering ``total``.

    ``deductions`` preserves spend order and omits buckets that were not
    touched.
    """

    total: int
    deductions: dict[Bucket, int] = field(default_factory=dict)

    def amount_for(self, bucket: Bucket) -> int:
        return self.deductions.get(bucket, 0)

    def apply(self, balances: Mapping[Bucket | str, int]) -> dict[Bucket, int]:
        """Balances after the plan is debited."""
        normalized = _normalize_balances(balances)
        return {
            bucket: normalized[bucket] - self.amount_for(bucket)
            for bucket in Bucket
        }

    def as_dict(self) -> dict[str, int]:
        return {bucket.value: amount for bucket, amount in self.deductions.items()}


def _normalize_balances(balances: Mapping[Bucket | str, int]) -> dict[Bucket, int]:
    normalized: dict[Bucket, int] = {}
    for bucket in Bucket:
        value = balances.get(bucket, balances.get(bucket.value, 0))
        if not isinstance(value, int) or value < 0:
            raise InvalidRequestError(
                f"Balance for {bucket.value} must be a non-negative integer",
                details={"bucket": bucket.value, "value": value},
            )
        normalized[bucket] = value
    return normalized


def allocate(
    required: int,
    priority: Sequence[Bucket | str],
    balances: Mapping[Bucket | str, int],
) -> AllocationPlan:
    """Cover ``required`` from ``balances`` in ``priority`` order.

    Args:
        required: Amount to charge (non-negative)
        priority: Spend order naming each bucket exactly once
        balances: Current balance per bucket

    Returns:
        AllocationPlan whose deductions sum to ``required``

    Raises:
        InsufficientFundsError: If the buckets together hold less than required
        InvalidRequestError: On a negative amount, bad priority or bad balances
    """
    if not isinstance(required, int) or required < 0:
        raise InvalidRequestError(
            "Required amount must be a non-negative integer",
            details={"required": required},
        )
    try:
        order = validate_priority([Bucket(b).value for b in priority])
    except ValueError as exc:
        raise InvalidRequestError(str(exc), details={"priority": list(priority)}) from exc

    available = _normalize_balances(balances)

    remaining = required
    deductions: dict[Bucket, int] = {}
    for bucket in order:
        if remaining == 0:
            break
        take = min(remaining, available[bucket])
        if take > 0:
            deductions[bucket] = take
            remaining -= take

    if remaining > 0:
        raise InsufficientFundsError(required=required, available=sum(available.values()))

    return AllocationPlan(total=required, deductions=deductions)

"""Loyalty points: earning, redemption and reversal."""
import logging
from decimal import Decimal, ROUND_FLOOR

from drinkpos.errors import InvalidRequest, PreconditionFailed
from drinkpos.models.core import Member
from drinkpos.services.pricing import _d

logger = logging.getLogger(__name__)

POINTS_PER_GLASS = 1
REDEEM_STEP = 10                    # points are redeemed in blocks of 10
REDEEM_RATE = Decimal("2.5")        # 1 point = 2.5 baht, so 10 points = 25 baht
GLASS_REDEEM_VALUE = 25             # one block of 10 points offsets one glass


def max_redeemable(balance: int, amount_after_tier) -> int:
    """min(balance, floor(amount / 2.5)), floored to a multiple of 10."""
    if balance <= 0:
        return 0
    by_amount = int((_d(amount_after_tier) / REDEEM_RATE).to_integral_value(rounding=ROUND_FLOOR))
    cap = min(balance, max(by_amount, 0))
    return (cap // REDEEM_STEP) * REDEEM_STEP


def points_value(points: int) -> Decimal:
    """Currency value of redeemed points, truncated to a whole unit."""
    return (REDEEM_RATE * points).to_integral_value(rounding=ROUND_FLOOR)


def check_redemption(points: int, balance: int, amount_after_tier) -> None:
    if points < 0:
        raise InvalidRequest("points to redeem cannot be negative")
    if points % REDEEM_STEP:
        raise InvalidRequest(f"points must be redeemed in multiples of {REDEEM_STEP}")
    cap = max_redeemable(balance, amount_after_tier)
    if points > cap:
        raise PreconditionFailed(f"cannot redeem {points} points (max {cap})")


def points_earned(total_glasses: int, points_discount) -> int:
    """1 point per glass not paid for with redeemed points."""
    redeemed_glasses = int((_d(points_discount) / GLASS_REDEEM_VALUE).to_integral_value(rounding=ROUND_FLOOR))
    return max(0, total_glasses - redeemed_glasses) * POINTS_PER_GLASS


def apply_settlement(member: Member, earned: int, used: int) -> int:
    """balance += earned - used, as one combined delta."""
    member.points = int(member.points or 0) + earned - used
    return member.points


def reverse_settlement(member: Member, earned: int, used: int) -> int:
    """Undo apply_settlement. Never leaves the balance below zero."""
    target = int(member.points or 0) - (earned - used)
    if target < 0:
        logger.warning("Point reversal for member %s would go negative (%d); clamping to 0",
                       member.id, target)
        target = 0
    member.points = target
    return target

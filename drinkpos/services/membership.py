"""Membership tiers, derived from lifetime glasses on COMPLETED orders."""
import logging
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.orm import Session

from drinkpos.models.core import Member, MemberTier, Order, OrderItem, OrderStatus
from drinkpos.services.pricing import _d

logger = logging.getLogger(__name__)

# evaluated highest-first, inclusive lower bounds
TIER_THRESHOLDS: tuple[tuple[int, MemberTier], ...] = (
    (100, MemberTier.PLATINUM),
    (50, MemberTier.GOLD),
    (10, MemberTier.SILVER),
)

TIER_DISCOUNT_PERCENT: dict[MemberTier, int] = {
    MemberTier.BRONZE: 0,
    MemberTier.SILVER: 5,
    MemberTier.GOLD: 10,
    MemberTier.PLATINUM: 15,
}


def tier_for_glasses(glasses: int) -> MemberTier:
    for threshold, tier in TIER_THRESHOLDS:
        if glasses >= threshold:
            return tier
    return MemberTier.BRONZE


def discount_percent(tier: MemberTier | None) -> int:
    if tier is None:
        return 0
    return TIER_DISCOUNT_PERCENT[tier]


def tier_discount(subtotal, tier: MemberTier | None) -> Decimal:
    """Tier discount on the subtotal, rounded half-up to a whole currency unit."""
    pct = discount_percent(tier)
    if not pct:
        return Decimal("0")
    return (_d(subtotal) * pct / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def completed_glasses(db: Session, member_id: str) -> int:
    total = (
        db.query(func.coalesce(func.sum(OrderItem.quantity), 0))
          .join(Order, Order.id == OrderItem.order_id)
          .filter(Order.member_id == member_id, Order.status == OrderStatus.COMPLETED)
          .scalar()
    )
    return int(total or 0)


def refresh_tier(db: Session, member: Member) -> MemberTier:
    """Re-derive and store the member's tier. Caller holds the member row lock
    and owns the transaction; pending order rows must already be flushed."""
    glasses = completed_glasses(db, member.id)
    new_tier = tier_for_glasses(glasses)
    if member.tier != new_tier:
        logger.info("Member %s tier %s -> %s (%d glasses)",
                    member.id, getattr(member.tier, "value", member.tier), new_tier.value, glasses)
        member.tier = new_tier
    return new_tier

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from drinkpos.db import get_db
from drinkpos.deps import require_auth
from drinkpos.errors import NotFound
from drinkpos.models.core import Member
from drinkpos.schemas.cart import QuoteIn, QuoteOut
from drinkpos.services.settlement import build_quote, resolve_lines

router = APIRouter(prefix="/cart", tags=["cart"])

@router.post("/quote", response_model=QuoteOut)
def quote(body: QuoteIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    """Price a cart exactly the way settlement will, without writing anything."""
    cart = resolve_lines(db, body.items)
    member = None
    if body.member_id:
        member = db.get(Member, body.member_id)
        if not member:
            raise NotFound("member not found")
    return build_quote(cart, member, body.points_used).as_dict()

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from drinkpos.schemas.common import Token
from drinkpos.util.security import create_token, verify_pin
from drinkpos.models.core import Staff
from drinkpos.db import get_db
from drinkpos.deps import require_auth

router = APIRouter(prefix="/auth", tags=["auth"])

class LoginIn(BaseModel):
    phone: str
    pin: str

@router.post("/login", response_model=Token)
def login(body: LoginIn, db: Session = Depends(get_db)):
    staff = db.query(Staff).filter(Staff.phone == body.phone.strip()).first()
    if not staff or not staff.active or not verify_pin(staff.pin_hash, body.pin.strip()):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return Token(access_token=create_token(staff.id, staff.role.value), staff_id=staff.id, role=staff.role.value)

@router.get("/me")
def me(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    staff = db.get(Staff, sub)
    return {"id": staff.id, "name": staff.name, "phone": staff.phone, "role": staff.role.value}

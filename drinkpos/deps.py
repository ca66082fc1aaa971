from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from sqlalchemy.orm import Session
from drinkpos.db import get_db
from drinkpos.models.core import Staff, StaffRole
from drinkpos.util.security import decode_token

auth_scheme = HTTPBearer(auto_error=False)

def require_auth(creds: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
                 db: Session = Depends(get_db)) -> str:
    """Validate the signed session token on every request; returns the staff id."""
    if not creds:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        data = decode_token(creds.credentials)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    staff = db.get(Staff, data.get("sub"))
    if not staff or not staff.active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Staff account is not active")
    return staff.id

def require_admin(sub: str = Depends(require_auth), db: Session = Depends(get_db)) -> str:
    staff = db.get(Staff, sub)
    if staff.role != StaffRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return sub

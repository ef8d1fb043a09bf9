from typing import Callable

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.core.errors import InvalidState, NotFound
from backend.database import get_db
from backend.models.patient import Patient
from backend.models.provider import Provider
from backend.models.user import PATIENT_ROLE, PROVIDER_ROLE, User

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_role(role: str) -> Callable[..., User]:
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            raise InvalidState("wrong_role", f"Only {role}s can perform this action.", status_code=403)
        return current_user

    return dependency


def get_patient_for_user(db: Session, user: User) -> Patient:
    patient = db.query(Patient).filter(Patient.user_id == user.id).first()
    if patient is None:
        raise NotFound("patient_profile_not_found", "Patient profile not found.")
    return patient


def get_provider_for_user(db: Session, user: User) -> Provider:
    provider = db.query(Provider).filter(Provider.user_id == user.id).first()
    if provider is None:
        raise NotFound("provider_not_found", "Provider profile not found.")
    return provider


def get_current_patient(
    current_user: User = Depends(require_role(PATIENT_ROLE)),
    db: Session = Depends(get_db),
) -> Patient:
    return get_patient_for_user(db, current_user)


def get_current_provider(
    current_user: User = Depends(require_role(PROVIDER_ROLE)),
    db: Session = Depends(get_db),
) -> Provider:
    return get_provider_for_user(db, current_user)

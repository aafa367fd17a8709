# api/deps.py
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from db.session import SessionLocal
from core import security
from tasks.evaluation_queue import EvaluationQueue


# tokens are issued by the external auth service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


@dataclass(frozen=True)
class AuthContext:
    user_id: int
    role: str


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(token: str = Depends(oauth2_scheme)) -> AuthContext:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = security.decode_token(token)
    except Exception:
        raise credentials_exception

    sub = payload.get("sub")
    role = payload.get("role")
    if sub is None or role not in (security.CANDIDATE, security.RECRUITER):
        raise credentials_exception
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise credentials_exception
    return AuthContext(user_id=user_id, role=role)


def require_role(*allowed_roles: str) -> Callable:
    def dependency(current_user: AuthContext = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operation not permitted")
        return current_user
    return dependency


require_candidate = require_role(security.CANDIDATE)
require_recruiter = require_role(security.RECRUITER)


def get_evaluation_queue(request: Request) -> Optional[EvaluationQueue]:
    return getattr(request.app.state, "evaluation_queue", None)

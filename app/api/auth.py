from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session, select

from app.core.config import settings
from app.core.database import get_db
from app.core.rate_limit import client_ip, limiter
from app.core.security import create_access_token, hash_password, verify_password
from app.core.timeutil import utcnow
from app.api.deps import get_current_user
from app.models import SecurityLog, User
from app.schemas import Token, UserResponse
from app.services.audit import record_audit

router = APIRouter(prefix="/auth", tags=["auth"])
_REGISTER_LIMIT = f"{settings.rate_limit_register_per_minute}/minute;100/hour"


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id or 0,
        email=user.email,
        full_name=user.full_name or "",
        phone=user.phone,
        role=user.role or "user",
    )


@router.post("/register", response_model=UserResponse)
@limiter.limit(_REGISTER_LIMIT)
async def register(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    email = (form.get("email") or "").strip().lower()
    password = form.get("password") or ""
    full_name = (form.get("full_name") or "").strip()
    phone = (form.get("phone") or "").strip()
    if not full_name:
        raise HTTPException(status_code=422, detail="이름을 입력하세요.")
    if not email or "@" not in email:
        raise HTTPException(status_code=422, detail="이메일을 입력하세요.")
    if len(password) < 6:
        raise HTTPException(status_code=422, detail="비밀번호는 6자 이상이어야 합니다.")
    if db.exec(select(User).where(User.email == email)).first():
        raise HTTPException(status_code=400, detail="이미 가입된 이메일입니다.")
    user = User(
        email=email,
        hashed_password=hash_password(password),
        full_name=full_name,
        phone=phone or None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    record_audit(db, "register", user.id, client_ip(request))
    return _user_response(user)


@router.post("/login", response_model=Token)
@limiter.limit("5/minute;20/hour")
async def login(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    email = (form.get("email") or "").strip().lower()
    password = form.get("password") or ""
    if not email:
        raise HTTPException(status_code=422, detail="이메일을 입력하세요.")
    if not password:
        raise HTTPException(status_code=422, detail="비밀번호를 입력하세요.")
    user = db.exec(select(User).where(User.email == email)).first()
    ip = client_ip(request)
    if not user or not verify_password(password, user.hashed_password):
        db.add(SecurityLog(event="failed_login", ip=ip, endpoint="/auth/login", detail=email))
        db.commit()
        raise HTTPException(status_code=401, detail="이메일 또는 비밀번호가 올바르지 않습니다.")
    token = create_access_token({"sub": str(user.id)})
    user.last_login_at = utcnow()
    db.add(user)
    db.commit()
    record_audit(db, "login", user.id, ip)
    return Token(access_token=token)


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return _user_response(user)

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth import (
    check_otp,
    create_access_token,
    get_current_user,
    hash_password,
    issue_otp,
    verify_password,
)
from ..config import settings
from ..database import get_db
from ..errors import NotFound, ValidationFailed
from ..models import User
from ..notifications import notify
from ..schemas import (
    LoginIn,
    ProfileUpdateIn,
    RegisterIn,
    RegisterOut,
    ResendOtpIn,
    TokenOut,
    UserOut,
    VerifyOtpIn,
)
from ..utils.ids import as_uuid


router = APIRouter(prefix="/auth", tags=["auth"])
log = logging.getLogger("rentx.auth")


def user_out(u: User) -> UserOut:
    return UserOut(
        id=str(u.id),
        name=u.name,
        email=u.email,
        phone=u.phone,
        address=u.address,
        role=u.role,
        is_verified=bool(u.is_verified),
        created_at=u.created_at,
    )


def _otp_sent(bg: BackgroundTasks, u: User, code: str) -> None:
    # In email mode the code only leaves through the mailer
    bg.add_task(notify, "user.otp_requested", {"user_id": str(u.id), "email": u.email, "name": u.name, "otp": code})


@router.post("/register", response_model=RegisterOut)
def register(payload: RegisterIn, bg: BackgroundTasks, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise ValidationFailed("Email already registered", code="email_taken")
    u = User(
        name=payload.name.strip(),
        email=email,
        password_hash=hash_password(payload.password),
        phone=payload.phone,
        address=payload.address,
        role="admin" if email in settings.ADMIN_EMAILS else "user",
        is_verified=False,
    )
    code = issue_otp(u)
    db.add(u)
    db.flush()
    _otp_sent(bg, u, code)
    log.info("user registered id=%s role=%s", u.id, u.role)
    return RegisterOut(
        user_id=str(u.id),
        detail="otp_sent",
        dev_otp=code if settings.OTP_MODE == "dev" else None,
    )


@router.post("/verify_otp", response_model=TokenOut)
def verify_otp(payload: VerifyOtpIn, db: Session = Depends(get_db)):
    uid = as_uuid(payload.user_id)
    u = db.get(User, uid) if isinstance(uid, UUID) else None
    if u is None:
        raise NotFound("User not found")
    if u.is_verified:
        raise ValidationFailed("User already verified", code="already_verified")
    if not check_otp(u, payload.otp):
        raise ValidationFailed("Invalid or expired OTP", code="invalid_or_expired_otp")
    u.is_verified = True
    u.otp = None
    u.otp_expires_at = None
    db.flush()
    return TokenOut(access_token=create_access_token(u), user=user_out(u))


@router.post("/resend_otp", response_model=RegisterOut)
def resend_otp(payload: ResendOtpIn, bg: BackgroundTasks, db: Session = Depends(get_db)):
    u = db.query(User).filter(User.email == payload.email.strip().lower()).one_or_none()
    if u is None:
        raise NotFound("User not found")
    if u.is_verified:
        raise ValidationFailed("User already verified", code="already_verified")
    code = issue_otp(u)
    db.flush()
    _otp_sent(bg, u, code)
    return RegisterOut(
        user_id=str(u.id),
        detail="otp_sent",
        dev_otp=code if settings.OTP_MODE == "dev" else None,
    )


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    u = db.query(User).filter(User.email == payload.email.strip().lower()).one_or_none()
    if u is None or not verify_password(payload.password, u.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "invalid_credentials", "message": "Invalid email or password"},
        )
    if not u.is_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "email_not_verified", "message": "Please verify your email first"},
        )
    return TokenOut(access_token=create_access_token(u), user=user_out(u))


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user_out(user)


@router.put("/profile", response_model=UserOut)
def update_profile(payload: ProfileUpdateIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if payload.name is not None:
        user.name = payload.name.strip()
    if payload.phone is not None:
        user.phone = payload.phone
    if payload.address is not None:
        user.address = payload.address
    db.flush()
    return user_out(user)

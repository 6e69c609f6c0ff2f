from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime, timedelta

from app.core.database import get_db
from app.core.config import settings
from app.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_otp,
    hash_otp,
    verify_otp as otp_matches,
)
from app.core.logging_config import logger, set_user_id
from app.core.types import is_valid_uuid
from app.core.rate_limiter import limiter, CREDENTIAL_LIMIT, SIGNUP_LIMIT
from app.models.flat import Flat
from app.models.user import User, UserRole
from app.schemas.auth import (
    UserRegister,
    VerifyOTPRequest,
    ResendOTPRequest,
    UserLogin,
    RefreshTokenRequest,
    TokenPair,
    UserSummary,
    UserResponse,
    LoginResponse,
    RegisterResponse,
)
from app.modules.auth.dependencies import get_current_user
from app.services.email_service import email_service


router = APIRouter()


def _issue_otp(user: User) -> str:
    """Attach a fresh OTP to the user and return the plain code for emailing"""
    otp = generate_otp()
    user.otp_hash = hash_otp(otp)
    user.otp_expires_at = datetime.utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
    user.otp_attempts = 0
    return otp


async def _send_otp(email: str, full_name: str, otp: str) -> None:
    """Background OTP delivery; failures are logged, never raised"""
    sent = await email_service.send_otp_email(email, full_name, otp)
    if sent:
        logger.info(f"[Auth] OTP email sent to {email}")
    else:
        logger.warning(f"[Auth] OTP email could not be sent to {email}")


def _claims(user: User) -> dict:
    return {"sub": str(user.id), "email": user.email, "role": user.role.value}


def _login_payload(user: User, message: str) -> dict:
    claims = _claims(user)
    return LoginResponse(
        message=message,
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
        user=UserSummary.model_validate(user),
    ).model_dump(mode="json")


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SIGNUP_LIMIT)
async def register(
    request: Request,
    user_data: UserRegister,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
):
    """Register a resident and email an OTP"""
    client_ip = request.client.host if request.client else "unknown"

    if user_data.password != user_data.confirm_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Passwords do not match"
        )

    result = await db.execute(
        select(User).where(User.email == user_data.email)
    )
    if result.scalar_one_or_none():
        logger.log_auth_event(
            event="register",
            success=False,
            user_email=user_data.email,
            reason="Email already registered",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists with this email"
        )

    if not user_data.wing or not user_data.flat_no:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Wing and Flat No are required for registration"
        )

    result = await db.execute(
        select(Flat).where(Flat.wing == user_data.wing, Flat.flat_no == user_data.flat_no)
    )
    if not result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Flat {user_data.wing}-{user_data.flat_no} not found. "
                   "Please contact admin to add this flat first."
        )

    user = User(
        full_name=user_data.full_name,
        email=user_data.email,
        wing=user_data.wing,
        flat_no=user_data.flat_no,
        phone_no=user_data.phone_no,
        hashed_password=get_password_hash(user_data.password),
        role=UserRole.RESIDENT,
        is_verified=False,
    )
    otp = _issue_otp(user)

    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.log_auth_event(
        event="register",
        success=True,
        user_email=user.email,
        client_ip=client_ip
    )

    background_tasks.add_task(_send_otp, user.email, user.full_name, otp)

    return RegisterResponse(user_id=str(user.id))


@router.post("/verify-otp", response_model=LoginResponse)
@limiter.limit(CREDENTIAL_LIMIT)
async def verify_otp(
    request: Request,
    payload: VerifyOTPRequest,
    db: AsyncSession = Depends(get_db)
):
    """Verify the emailed OTP and log the user in"""
    user = await db.get(User, payload.user_id) if is_valid_uuid(payload.user_id) else None

    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user")

    if user.is_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already verified")

    if user.otp_attempts >= settings.OTP_MAX_ATTEMPTS:
        logger.log_auth_event(event="verify_otp", success=False, user_email=user.email, reason="Too many attempts")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many invalid attempts. Please request a new OTP."
        )

    if not otp_matches(payload.otp, user.otp_hash):
        user.otp_attempts = (user.otp_attempts or 0) + 1
        await db.commit()
        logger.log_auth_event(event="verify_otp", success=False, user_email=user.email, reason="Invalid OTP")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OTP")

    if not user.otp_expires_at or user.otp_expires_at < datetime.utcnow():
        logger.log_auth_event(event="verify_otp", success=False, user_email=user.email, reason="OTP expired")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="OTP has expired")

    user.is_verified = True
    user.otp_hash = None
    user.otp_expires_at = None
    user.otp_attempts = 0
    user.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(str(user.id))
    logger.log_auth_event(event="verify_otp", success=True, user_email=user.email)

    return _login_payload(user, "Email verified successfully")


@router.post("/resend-otp")
@limiter.limit(SIGNUP_LIMIT)
async def resend_otp(
    request: Request,
    payload: ResendOTPRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
):
    """Issue a fresh OTP; the response never reveals whether the account exists"""
    result = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = result.scalar_one_or_none()

    if user and not user.is_verified:
        otp = _issue_otp(user)
        await db.commit()
        background_tasks.add_task(_send_otp, user.email, user.full_name, otp)
        logger.log_auth_event(event="resend_otp", success=True, user_email=user.email)

    return {
        "success": True,
        "message": "If an unverified account with that email exists, a new OTP has been sent."
    }


@router.post("/login", response_model=LoginResponse)
@limiter.limit(CREDENTIAL_LIMIT)
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login user"""
    client_ip = request.client.host if request.client else "unknown"

    result = await db.execute(
        select(User).where(User.email == credentials.email.lower())
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=credentials.email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not user.is_verified:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=user.email,
            reason="Email not verified",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please verify your email first"
        )

    if not user.is_active:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=user.email,
            reason="Account inactive",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    user.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(str(user.id))
    logger.log_auth_event(
        event="login",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )

    return _login_payload(user, "Login successful")


@router.get("/me")
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user info"""
    return {
        "success": True,
        "user": UserResponse.model_validate(current_user)
    }


@router.post("/refresh", response_model=TokenPair)
async def refresh_token(
    token_request: RefreshTokenRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Refresh access token using refresh token"""
    client_ip = request.client.host if request.client else "unknown"

    payload = decode_token(token_request.refresh_token)

    if payload.get("type") != "refresh":
        logger.log_auth_event(
            event="token_refresh",
            success=False,
            reason="Invalid token type",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type - expected refresh token"
        )

    user_id = payload.get("sub")
    user = await db.get(User, user_id) if user_id and is_valid_uuid(user_id) else None

    if not user:
        logger.log_auth_event(event="token_refresh", success=False, reason="User not found", client_ip=client_ip)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    logger.log_auth_event(event="token_refresh", success=True, user_email=user.email, client_ip=client_ip)

    claims = _claims(user)
    return TokenPair(access_token=create_access_token(claims), refresh_token=create_refresh_token(claims))


@router.post("/logout")
async def logout(
    current_user: User = Depends(get_current_user)
):
    """Tokens are stateless; the client discards them"""
    logger.log_auth_event(event="logout", success=True, user_email=current_user.email)
    return {"success": True, "message": "Logged out successfully"}

"""
Auth endpoints
==============

POST /api/v1/auth/signup             -- register and receive a token
POST /api/v1/auth/login              -- exchange credentials for a token
GET  /api/v1/auth/me                 -- the current user
PUT  /api/v1/auth/profile/{user_id}  -- update own profile
POST /api/v1/auth/logout             -- revoke the current token
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.api.dependencies import (
    Clock,
    get_clock,
    get_current_session,
    get_db,
    get_token_store,
)
from carpool.api.middleware import RATE_LIMIT, limiter
from carpool.api.schemas import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    SignupRequest,
    UserResponse,
)
from carpool.infrastructure.sessions import RevokedTokenStore
from carpool.services.auth import AuthService, AuthSession, InvalidCredentials

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    status_code=201,
    response_model=AuthResponse,
    summary="Register a new user",
)
@limiter.limit(RATE_LIMIT)
async def signup(
    request: Request,
    body: SignupRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    user, issued = await AuthService(db).signup(
        name=body.name,
        email=body.email,
        password=body.password,
        phone=body.phone,
        gender=body.gender,
        community=body.community,
        now=clock(),
    )
    return AuthResponse(
        message="User created successfully",
        token=issued.token,
        user=UserResponse.from_model(user),
    )


@router.post("/login", response_model=AuthResponse, summary="Log in")
@limiter.limit(RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        user, issued = await AuthService(db).login(body.email, body.password, clock())
    except InvalidCredentials:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return AuthResponse(
        message="Login successful",
        token=issued.token,
        user=UserResponse.from_model(user),
    )


@router.get("/me", response_model=UserResponse, summary="Current user")
@limiter.limit(RATE_LIMIT)
async def me(
    request: Request,
    auth: AuthSession = Depends(get_current_session),
):
    return UserResponse.from_model(auth.user)


@router.put(
    "/profile/{user_id}",
    response_model=ProfileResponse,
    summary="Update own profile",
    description=(
        "Password, email, trust score and verification status cannot be "
        "changed here; requests naming them are rejected."
    ),
)
@limiter.limit(RATE_LIMIT)
async def update_profile(
    request: Request,
    user_id: int,
    body: ProfileUpdateRequest,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    user = await AuthService(db).update_profile(
        auth, user_id, body.model_dump(exclude_unset=True, exclude_none=True), clock()
    )
    return ProfileResponse(
        message="Profile updated successfully", user=UserResponse.from_model(user)
    )


@router.post("/logout", response_model=MessageResponse, summary="Log out")
@limiter.limit(RATE_LIMIT)
async def logout(
    request: Request,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    store: RevokedTokenStore = Depends(get_token_store),
    clock: Clock = Depends(get_clock),
):
    await AuthService(db).logout(auth, store, clock())
    return MessageResponse(message="Logged out")

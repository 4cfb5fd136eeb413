"""User API endpoints.

Endpoints:
- POST /users/register - Create profile and wallet for the token subject
- GET /users/me - Current profile
- POST /users/me/referral - Link a referrer (once)
"""

from fastapi import APIRouter, status

from tourney.api.deps import CurrentContext, Users
from tourney.schemas import LinkReferralRequest, RegisterRequest, UserResponse

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    request_data: RegisterRequest,
    ctx: CurrentContext,
    users: Users,
) -> UserResponse:
    """Create the caller's profile with a zeroed wallet."""
    user = await users.register(
        ctx,
        email=request_data.email,
        username=request_data.username,
        referral_code=request_data.referral_code,
    )
    return UserResponse.from_model(user)


@router.get("/me", response_model=UserResponse)
async def get_me(ctx: CurrentContext, users: Users) -> UserResponse:
    user = await users.get_profile(ctx)
    return UserResponse.from_model(user)


@router.post("/me/referral", response_model=UserResponse)
async def link_referral(
    request_data: LinkReferralRequest,
    ctx: CurrentContext,
    users: Users,
) -> UserResponse:
    """Link the caller to the owner of ``code``. Allowed once."""
    user = await users.link_referral(ctx, request_data.code)
    return UserResponse.from_model(user)

"""User registration, referral linking and the admin user list."""

import secrets
import string

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tourney.config import Settings, get_settings
from tourney.context import RequestContext
from tourney.logging_config import get_logger
from tourney.models.base import utc_now
from tourney.models.user import User
from tourney.services.wallet import WalletService
from tourney.utils.db import run_optimistic
from tourney.utils.errors import InvalidRequestError, InvalidStateError, NotFoundError

logger = get_logger(__name__)

REFERRAL_CODE_LENGTH = 6
REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_MAX_TRIES = 10


def generate_referral_code() -> str:
    return "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH)
    )


class UserService:
    """User profile operations."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.config = config or get_settings()

    async def register(
        self,
        ctx: RequestContext,
        email: str,
        username: str | None = None,
        referral_code: str | None = None,
    ) -> User:
        """Create the caller's user record and zeroed wallet.

        The username defaults to the local part of the email. A referral code,
        when given, is linked in the same transaction.

        Raises:
            InvalidStateError: Caller is already registered
            InvalidRequestError: Email already in use
            NotFoundError: Referral code does not exist
        """

        async def body(session: AsyncSession) -> User:
            if await session.get(User, ctx.user_id) is not None:
                raise InvalidStateError(
                    "User already registered",
                    details={"userId": ctx.user_id},
                )
            taken = await session.execute(select(User.id).where(User.email == email))
            if taken.first() is not None:
                raise InvalidRequestError("Email already in use", details={"email": email})

            try:
                user = User(
                    id=ctx.user_id,
                    email=email,
                    username=username or email.split("@")[0],
                    referral_code=await self._unique_referral_code(session),
                    last_login=utc_now(),
                )
            except ValueError as exc:
                raise InvalidRequestError(str(exc)) from exc

            if referral_code:
                referrer = await self._referrer(session, referral_code)
                if referrer.id == ctx.user_id:
                    raise InvalidStateError("You cannot use your own referral code")
                user.referred_by = referrer.id

            session.add(user)
            # Wallet references the user row
            await session.flush()
            await WalletService(session).create_wallet(user.id)
            await session.flush()
            return user

        user = await run_optimistic(
            "register_user",
            body,
            session_factory=self.session_factory,
            max_attempts=self.config.join_max_attempts,
        )
        logger.info(
            "user_registered",
            user_id=user.id,
            referred_by=user.referred_by,
        )
        return user

    async def get_profile(self, ctx: RequestContext) -> User:
        async with self.session_factory() as session:
            user = await session.get(User, ctx.user_id)
        if user is None:
            raise NotFoundError("user", ctx.user_id)
        return user

    async def list_users(
        self,
        ctx: RequestContext,
        search: str | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[User]:
        """Users newest first, optionally matching ``search`` in username or email.

        Matching is a case-insensitive substring test.
        """
        ctx.require_admin()
        query = (
            select(User)
            .order_by(User.created_at.desc(), User.id)
            .offset(offset)
            .limit(limit)
        )
        search = (search or "").strip()
        if search:
            query = query.where(
                or_(
                    User.username.icontains(search, autoescape=True),
                    User.email.icontains(search, autoescape=True),
                )
            )

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def link_referral(self, ctx: RequestContext, code: str) -> User:
        """Set the caller's referrer. Allowed once; never overwritten.

        Raises:
            NotFoundError: Unknown code, or caller not registered
            InvalidStateError: Own code, or a referrer is already linked
        """

        async def body(session: AsyncSession) -> User:
            user = await session.get(User, ctx.user_id, populate_existing=True)
            if user is None:
                raise NotFoundError("user", ctx.user_id)
            if user.referred_by is not None:
                raise InvalidStateError(
                    "Referral already linked",
                    details={"referredBy": user.referred_by},
                )
            referrer = await self._referrer(session, code)
            if referrer.id == user.id:
                raise InvalidStateError("You cannot use your own referral code")
            user.referred_by = referrer.id
            await session.flush()
            return user

        user = await run_optimistic(
            "link_referral",
            body,
            session_factory=self.session_factory,
            max_attempts=self.config.join_max_attempts,
        )
        logger.info("referral_linked", user_id=user.id, referred_by=user.referred_by)
        return user

    @staticmethod
    async def _referrer(session: AsyncSession, code: str) -> User:
        result = await session.execute(
            select(User).where(User.referral_code == code.strip().upper())
        )
        referrer = result.scalar_one_or_none()
        if referrer is None:
            raise NotFoundError("referral code", code)
        return referrer

    @staticmethod
    async def _unique_referral_code(session: AsyncSession) -> str:
        for _ in range(REFERRAL_CODE_MAX_TRIES):
            code = generate_referral_code()
            result = await session.execute(
                select(User.id).where(User.referral_code == code)
            )
            if result.first() is None:
                return code
        raise InvalidStateError("Could not allocate a unique referral code")

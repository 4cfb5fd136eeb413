"""Deposit, withdrawal and prize processing.

Users create pending deposit and withdrawal requests; admins approve or reject
them. Each status change is a single pending -> completed/rejected transition
performed under the optimistic retry runner, so a concurrent double
approve/reject resolves to one success and one InvalidStateError.

A withdrawal takes its amount out of the winning bucket when requested. A
rejected withdrawal always refunds into winning.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tourney.config import Settings, get_settings
from tourney.context import RequestContext
from tourney.logging_config import get_logger
from tourney.models.base import utc_now
from tourney.models.wallet import (
    Bucket,
    TransactionStatus,
    TransactionType,
    WalletTransaction,
)
from tourney.services.settings import SettingsService
from tourney.services.wallet import WalletService
from tourney.utils.db import run_optimistic
from tourney.utils.errors import (
    FeatureDisabledError,
    InsufficientFundsError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
)

logger = get_logger(__name__)


def _require_positive(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidRequestError(
            "Amount must be a positive integer",
            details={"amount": amount},
        )


async def _load_pending(
    session: AsyncSession,
    tx_id: str,
    tx_type: TransactionType,
) -> WalletTransaction:
    tx = await session.get(WalletTransaction, tx_id, populate_existing=True)
    if tx is None:
        raise NotFoundError("transaction", tx_id)
    if tx.tx_type != tx_type:
        raise InvalidStateError(
            f"Transaction is a {tx.tx_type.value}, not a {tx_type.value}",
            details={"transactionId": tx_id, "type": tx.tx_type.value},
        )
    if not tx.is_pending:
        raise InvalidStateError(
            f"Transaction already {tx.status.value}",
            details={"transactionId": tx_id, "status": tx.status.value},
        )
    return tx


class PaymentService:
    """Deposit/withdrawal requests, admin reversal and prize awards."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.config = config or get_settings()

    async def _run(self, operation: str, fn) -> WalletTransaction:
        return await run_optimistic(
            operation,
            fn,
            session_factory=self.session_factory,
            max_attempts=self.config.join_max_attempts,
            base_delay=self.config.join_retry_base_delay,
            max_delay=self.config.join_retry_max_delay,
        )

    # ============================================================
    # User requests
    # ============================================================

    async def request_deposit(
        self,
        ctx: RequestContext,
        amount: int,
        description: str | None = None,
    ) -> WalletTransaction:
        """Record a pending deposit. Funds arrive only on approval."""
        _require_positive(amount)

        async def body(session: AsyncSession) -> WalletTransaction:
            app_settings = await SettingsService(session, self.config).get()
            if not app_settings.deposit_enabled:
                raise FeatureDisabledError("deposit")
            wallets = WalletService(session)
            await wallets.get_wallet(ctx.user_id)
            tx = wallets.record(
                ctx.user_id,
                TransactionType.DEPOSIT,
                amount,
                status=TransactionStatus.PENDING,
                description=description or "Deposit request",
            )
            await session.flush()
            return tx

        tx = await self._run("request_deposit", body)
        logger.info("deposit_requested", user_id=ctx.user_id, tx_id=tx.id, amount=amount)
        return tx

    async def request_withdrawal(
        self,
        ctx: RequestContext,
        amount: int,
        description: str | None = None,
    ) -> WalletTransaction:
        """Debit winning and record a pending withdrawal in one transaction.

        Raises:
            FeatureDisabledError: Withdrawals are switched off
            InsufficientFundsError: Winning bucket holds less than ``amount``
        """
        _require_positive(amount)

        async def body(session: AsyncSession) -> WalletTransaction:
            app_settings = await SettingsService(session, self.config).get()
            if not app_settings.withdrawal_enabled:
                raise FeatureDisabledError("withdrawal")
            wallets = WalletService(session)
            wallet = await wallets.get_wallet(ctx.user_id)
            if wallet.winning < amount:
                raise InsufficientFundsError(required=amount, available=wallet.winning)
            wallet.debit(Bucket.WINNING, amount)
            tx = wallets.record(
                ctx.user_id,
                TransactionType.WITHDRAWAL,
                amount,
                status=TransactionStatus.PENDING,
                description=description or "Withdrawal request",
            )
            await session.flush()
            return tx

        tx = await self._run("request_withdrawal", body)
        logger.info("withdrawal_requested", user_id=ctx.user_id, tx_id=tx.id, amount=amount)
        return tx

    # ============================================================
    # Admin processing
    # ============================================================

    async def approve_withdrawal(self, ctx: RequestContext, tx_id: str) -> WalletTransaction:
        """Mark a pending withdrawal completed. The funds already left winning."""
        ctx.require_admin()

        async def body(session: AsyncSession) -> WalletTransaction:
            tx = await _load_pending(session, tx_id, TransactionType.WITHDRAWAL)
            tx.status = TransactionStatus.COMPLETED
            tx.processed_at = utc_now()
            await session.flush()
            return tx

        tx = await self._run("approve_withdrawal", body)
        logger.info("withdrawal_approved", tx_id=tx_id, admin_id=ctx.user_id)
        return tx

    async def reject_withdrawal(self, ctx: RequestContext, tx_id: str) -> WalletTransaction:
        """Reject a pending withdrawal and refund its amount into winning.

        Raises:
            NotFoundError: No such transaction
            InvalidStateError: Not a withdrawal, or no longer pending
        """
        ctx.require_admin()

        async def body(session: AsyncSession) -> WalletTransaction:
            tx = await _load_pending(session, tx_id, TransactionType.WITHDRAWAL)
            wallets = WalletService(session)
            wallet = await wallets.get_wallet(tx.user_id)
            tx.status = TransactionStatus.REJECTED
            tx.processed_at = utc_now()
            wallets.credit(wallet, Bucket.WINNING, tx.amount)
            await session.flush()
            return tx

        tx = await self._run("reject_withdrawal", body)
        logger.info(
            "withdrawal_rejected",
            tx_id=tx_id,
            user_id=tx.user_id,
            refunded=tx.amount,
            admin_id=ctx.user_id,
        )
        return tx

    async def approve_deposit(self, ctx: RequestContext, tx_id: str) -> WalletTransaction:
        """Complete a pending deposit and credit the deposit bucket."""
        ctx.require_admin()

        async def body(session: AsyncSession) -> WalletTransaction:
            tx = await _load_pending(session, tx_id, TransactionType.DEPOSIT)
            wallets = WalletService(session)
            wallet = await wallets.get_wallet(tx.user_id)
            tx.status = TransactionStatus.COMPLETED
            tx.processed_at = utc_now()
            wallets.credit(wallet, Bucket.DEPOSIT, tx.amount)
            await session.flush()
            return tx

        tx = await self._run("approve_deposit", body)
        logger.info(
            "deposit_approved",
            tx_id=tx_id,
            user_id=tx.user_id,
            amount=tx.amount,
            admin_id=ctx.user_id,
        )
        return tx

    async def reject_deposit(self, ctx: RequestContext, tx_id: str) -> WalletTransaction:
        ctx.require_admin()

        async def body(session: AsyncSession) -> WalletTransaction:
            tx = await _load_pending(session, tx_id, TransactionType.DEPOSIT)
            tx.status = TransactionStatus.REJECTED
            tx.processed_at = utc_now()
            await session.flush()
            return tx

        tx = await self._run("reject_deposit", body)
        logger.info("deposit_rejected", tx_id=tx_id, admin_id=ctx.user_id)
        return tx

    async def approve(self, ctx: RequestContext, tx_id: str) -> WalletTransaction:
        """Approve a pending deposit or withdrawal, dispatching on its type."""
        tx_type = await self._pending_type(ctx, tx_id)
        if tx_type == TransactionType.DEPOSIT:
            return await self.approve_deposit(ctx, tx_id)
        return await self.approve_withdrawal(ctx, tx_id)

    async def reject(self, ctx: RequestContext, tx_id: str) -> WalletTransaction:
        """Reject a pending deposit or withdrawal, dispatching on its type."""
        tx_type = await self._pending_type(ctx, tx_id)
        if tx_type == TransactionType.DEPOSIT:
            return await self.reject_deposit(ctx, tx_id)
        return await self.reject_withdrawal(ctx, tx_id)

    async def _pending_type(self, ctx: RequestContext, tx_id: str) -> TransactionType:
        ctx.require_admin()
        async with self.session_factory() as session:
            tx = await session.get(WalletTransaction, tx_id)
        if tx is None:
            raise NotFoundError("transaction", tx_id)
        if tx.tx_type not in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL):
            raise InvalidStateError(
                f"{tx.tx_type.value} transactions cannot be approved or rejected",
                details={"transactionId": tx_id, "type": tx.tx_type.value},
            )
        return tx.tx_type

    async def award_prize(
        self,
        ctx: RequestContext,
        user_id: str,
        amount: int,
        tournament_id: str | None = None,
        description: str | None = None,
    ) -> WalletTransaction:
        """Credit a prize into winning and record a completed tournament_win."""
        ctx.require_admin()
        _require_positive(amount)

        async def body(session: AsyncSession) -> WalletTransaction:
            wallets = WalletService(session)
            wallet = await wallets.get_wallet(user_id)
            wallets.credit(wallet, Bucket.WINNING, amount)
            tx = wallets.record(
                user_id,
                TransactionType.TOURNAMENT_WIN,
                amount,
                tournament_id=tournament_id,
                description=description or "Tournament prize",
            )
            await session.flush()
            return tx

        tx = await self._run("award_prize", body)
        logger.info(
            "prize_awarded",
            user_id=user_id,
            tournament_id=tournament_id,
            amount=amount,
            admin_id=ctx.user_id,
        )
        return tx

    # ============================================================
    # Listing
    # ============================================================

    async def list_transactions(
        self,
        ctx: RequestContext,
        *,
        tx_type: TransactionType | None = None,
        status: TransactionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WalletTransaction]:
        """All users' transactions, newest first, optionally filtered."""
        ctx.require_admin()
        query = (
            select(WalletTransaction)
            .order_by(WalletTransaction.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        if tx_type is not None:
            query = query.where(WalletTransaction.tx_type == tx_type)
        if status is not None:
            query = query.where(WalletTransaction.status == status)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

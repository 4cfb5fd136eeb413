"""Wallet service for bucket balance operations.

Every method works inside the caller's session and transaction. Nothing here
commits; the join coordinator and the payment service own the transaction
boundaries and retry on version conflicts.

Features:
- Per-bucket debits driven by an AllocationPlan
- Bucket credits (deposit approval, withdrawal refund, prizes)
- Ledger entries for every balance movement
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tourney.logging_config import get_logger
from tourney.models.base import utc_now
from tourney.models.wallet import (
    Bucket,
    TransactionStatus,
    TransactionType,
    Wallet,
    WalletTransaction,
)
from tourney.services.allocator import AllocationPlan
from tourney.utils.errors import InsufficientFundsError, InvalidRequestError, NotFoundError

logger = get_logger(__name__)


class WalletService:
    """Wallet operations bound to one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_wallet(self, user_id: str) -> Wallet:
        """Load the user's wallet with current committed values.

        Raises:
            NotFoundError: If the user has no wallet
        """
        result = await self.session.execute(
            select(Wallet)
            .where(Wallet.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        wallet = result.scalar_one_or_none()
        if wallet is None:
            raise NotFoundError("wallet", user_id)
        return wallet

    async def create_wallet(self, user_id: str) -> Wallet:
        """Add a zeroed wallet for a new user."""
        wallet = Wallet(user_id=user_id, deposit=0, winning=0, bonus=0)
        self.session.add(wallet)
        return wallet

    def apply_plan(self, wallet: Wallet, plan: AllocationPlan) -> None:
        """Debit each bucket by its planned amount.

        The plan must have been computed from this wallet's current balances.
        """
        for bucket, amount in plan.deductions.items():
            if getattr(wallet, bucket.value) < amount:
                raise InsufficientFundsError(required=plan.total, available=wallet.total)
            wallet.debit(bucket, amount)

    def credit(self, wallet: Wallet, bucket: Bucket, amount: int) -> None:
        if amount <= 0:
            raise InvalidRequestError(
                "Credit amount must be positive",
                details={"amount": amount},
            )
        wallet.credit(bucket, amount)
        logger.debug(
            "wallet_credited",
            user_id=wallet.user_id,
            bucket=bucket.value,
            amount=amount,
        )

    def record(
        self,
        user_id: str,
        tx_type: TransactionType,
        amount: int,
        *,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        tournament_id: str | None = None,
        description: str | None = None,
        processed_at: datetime | None = None,
    ) -> WalletTransaction:
        """Append a ledger entry to the session."""
        if status != TransactionStatus.PENDING and processed_at is None:
            processed_at = utc_now()
        tx = WalletTransaction(
            user_id=user_id,
            tx_type=tx_type,
            status=status,
            amount=amount,
            tournament_id=tournament_id,
            description=description,
            processed_at=processed_at,
        )
        self.session.add(tx)
        return tx

    async def get_transactions(
        self,
        user_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
        tx_type: TransactionType | None = None,
    ) -> list[WalletTransaction]:
        """Get user's transaction history, newest first.

        Args:
            user_id: User ID
            limit: Max transactions to return
            offset: Pagination offset
            tx_type: Optional filter by transaction type

        Returns:
            List of transactions
        """
        query = (
            select(WalletTransaction)
            .where(WalletTransaction.user_id == user_id)
            .order_by(WalletTransaction.created_at.desc())
            .offset(offset)
            .limit(limit)
        )

        if tx_type:
            query = query.where(WalletTransaction.tx_type == tx_type)

        result = await self.session.execute(query)
        return list(result.scalars().all())

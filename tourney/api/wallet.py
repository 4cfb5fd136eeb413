"""Wallet API endpoints.

Endpoints:
- GET /wallet - Bucket balances
- GET /wallet/transactions - Transaction history
- POST /wallet/deposits - Request a deposit (pending until approved)
- POST /wallet/withdrawals - Request a withdrawal from winnings
"""

from fastapi import APIRouter, Query, status

from tourney.api.deps import CurrentContext, DbSession, Payments
from tourney.models import TransactionType
from tourney.schemas import AmountRequest, TransactionResponse, WalletResponse
from tourney.services.wallet import WalletService

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("", response_model=WalletResponse)
async def get_wallet(ctx: CurrentContext, session: DbSession) -> WalletResponse:
    """Get the caller's bucket balances."""
    wallet = await WalletService(session).get_wallet(ctx.user_id)
    return WalletResponse.from_model(wallet)


@router.get("/transactions", response_model=list[TransactionResponse])
async def get_transactions(
    ctx: CurrentContext,
    session: DbSession,
    tx_type: TransactionType | None = Query(None, alias="type"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[TransactionResponse]:
    """Get the caller's transaction history, newest first."""
    transactions = await WalletService(session).get_transactions(
        ctx.user_id,
        limit=limit,
        offset=offset,
        tx_type=tx_type,
    )
    return [TransactionResponse.from_model(tx) for tx in transactions]


@router.post(
    "/deposits",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_deposit(
    request_data: AmountRequest,
    ctx: CurrentContext,
    payments: Payments,
) -> TransactionResponse:
    tx = await payments.request_deposit(ctx, request_data.amount, request_data.description)
    return TransactionResponse.from_model(tx)


@router.post(
    "/withdrawals",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_withdrawal(
    request_data: AmountRequest,
    ctx: CurrentContext,
    payments: Payments,
) -> TransactionResponse:
    """Move ``amount`` out of winnings into a pending withdrawal."""
    tx = await payments.request_withdrawal(ctx, request_data.amount, request_data.description)
    return TransactionResponse.from_model(tx)

"""Transaction endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..auth.dependencies import get_current_user_id
from ..core.commission_engine import CommissionEngine
from ..repositories.dependencies import get_commission_engine
from .schemas import (
    ProblemDetails,
    TransactionCreate,
    TransactionRecorded,
    TransactionResponse,
)

router = APIRouter(prefix="/v1/transactions", tags=["transactions"])


@router.post(
    "",
    response_model=TransactionRecorded,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Transaction recorded"},
        400: {"model": ProblemDetails, "description": "Amount is not a positive number"},
        401: {"model": ProblemDetails, "description": "Not authenticated"},
        404: {"model": ProblemDetails, "description": "User not found"},
    },
)
async def record_transaction(
    transaction_data: TransactionCreate,
    user_id: UUID = Depends(get_current_user_id),
    engine: CommissionEngine = Depends(get_commission_engine),
) -> TransactionRecorded:
    """
    Record a transaction for the caller.

    Transactions of 1000 or more pay 5% to the caller's referrer and 2% to the
    referrer's referrer.
    """
    transaction = await engine.record_transaction(user_id, transaction_data.amount)
    return TransactionRecorded(transaction=TransactionResponse.model_validate(transaction))

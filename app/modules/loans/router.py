from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from app.modules.loans.schemas import (
    LoanApplicationRequest, LoanApplicationResponse, LoanRepaymentRequest, LoanResponse
)
from app.modules.loans.services import LoanService

router = APIRouter(prefix="/loan", tags=["loans"])


@router.post("/apply")
async def apply_loan(
    application: LoanApplicationRequest,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Apply for a loan.

    - amount must be at least 100, duration at least 12 weeks
    - rejected while the user has an outstanding loan
    """
    service = LoanService(db)
    loan = await service.apply_for_loan(user_id, application.amount, application.duration)
    payload = LoanApplicationResponse(
        message="Loan has been applied successfully!",
        loan=LoanResponse.model_validate(loan)
    )
    return success_response(payload.model_dump())


@router.post("/{loan_id}/repay")
async def repay_loan(
    loan_id: int,
    repayment: LoanRepaymentRequest,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Repay part or all of an outstanding loan.

    - the amount may not exceed the remaining balance
    - paying the exact remaining balance closes the loan
    """
    service = LoanService(db)
    result = await service.repay_loan(loan_id, user_id, repayment.amount)
    return success_response(result.model_dump())

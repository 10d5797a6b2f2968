from pydantic import BaseModel, Field, validator
from pydantic_core import PydanticCustomError
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

MIN_LOAN_AMOUNT = Decimal("100")
MIN_LOAN_DURATION = 12
MAX_LOAN_DURATION = 520


class LoanApplicationRequest(BaseModel):
    """Loan application; duration is in weeks"""
    amount: Decimal = Field(..., max_digits=14)
    duration: int

    @validator('amount')
    def validate_amount(cls, v):
        if v < MIN_LOAN_AMOUNT:
            raise PydanticCustomError("min", "Requested loan amount must exceed $99.")
        # Any numeric amount is accepted and priced in cents
        return v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @validator('duration')
    def validate_duration(cls, v):
        if v < MIN_LOAN_DURATION:
            raise PydanticCustomError("min", "Requested loan duration must exceed 11 Weeks.")
        if v > MAX_LOAN_DURATION:
            raise PydanticCustomError(
                "max", f"Requested loan duration may not exceed {MAX_LOAN_DURATION} Weeks."
            )
        return v


class LoanRepaymentRequest(BaseModel):
    amount: Decimal = Field(..., max_digits=14, decimal_places=2)

    @validator('amount')
    def validate_amount(cls, v):
        if v <= 0:
            raise PydanticCustomError("gt", "The amount must be greater than 0.")
        return v


class LoanResponse(BaseModel):
    id: int
    user_id: int
    amount: Decimal
    duration: int
    interest_rate: Decimal
    calculated_interest: Decimal
    other_charges: Decimal
    total_amount: Decimal
    total_amount_paid: Decimal
    remaining_amount: Decimal
    status: bool
    created_at: datetime

    class Config:
        from_attributes = True


class LoanApplicationResponse(BaseModel):
    message: str
    loan: LoanResponse


class RepaymentResponse(BaseModel):
    """Outcome of an accepted repayment"""
    message: str
    remaining: Decimal

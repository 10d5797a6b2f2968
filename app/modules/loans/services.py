from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Dict, Union
import logging

from app.core.config import settings
from app.core.exceptions import BadRequest, NotFound, TransactionFailed, ValidationFailed
from app.modules.loans.models import Loan, Repayment, MAX_AMOUNT, OTHER_CHARGES
from app.modules.loans.schemas import RepaymentResponse
from app.modules.users.models import User

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Quantize a monetary value to cents"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """Render an amount without trailing zeros: 2250.00 -> 2250, 1234.50 -> 1234.5"""
    text = f"{value:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class LoanService:
    """
    Loan origination and the repayment ledger.

    The interest rate is fixed per service instance so that callers (and
    tests) can price loans at any rate; it defaults to the configured
    system-wide rate.
    """

    def __init__(self, db: AsyncSession, interest_rate: Optional[Number] = None):
        self.db = db
        if interest_rate is None:
            interest_rate = settings.INTEREST_RATE
        self.interest_rate = Decimal(str(interest_rate))

    # ------------------------------------------------------------------
    # Origination
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_schedule(amount: Number, duration: int, interest_rate: Number) -> Dict[str, Decimal]:
        """Flat simple interest over the whole duration plus the fixed fee"""
        amount = to_money(amount)
        interest_rate = Decimal(str(interest_rate))
        calculated_interest = to_money(amount * duration * interest_rate / 100)
        total_amount = to_money(amount + calculated_interest + OTHER_CHARGES)
        return {
            "amount": amount,
            "interest_rate": interest_rate,
            "calculated_interest": calculated_interest,
            "other_charges": OTHER_CHARGES,
            "total_amount": total_amount,
        }

    async def has_outstanding_loan(self, user_id: int) -> bool:
        result = await self.db.execute(
            select(func.count(Loan.id)).where(Loan.user_id == user_id, Loan.status.is_(True))
        )
        return result.scalar_one() > 0

    async def apply_for_loan(self, user_id: int, amount: Number, duration: int) -> Loan:
        """
        Originate a loan for the user.

        Field constraints are enforced by LoanApplicationRequest; this checks
        that the priced loan fits the money columns and evaluates the
        eligibility rule against the store. The user row is
        locked first so two applications from one user cannot both pass the
        dues check.
        """
        try:
            schedule = self.calculate_schedule(amount, duration, self.interest_rate)
        except InvalidOperation:
            schedule = None
        if schedule is None or schedule["total_amount"] > MAX_AMOUNT:
            raise ValidationFailed.single(
                "amount", "Requested loan amount is too large for the selected duration."
            )

        await self.db.execute(select(User.id).where(User.id == user_id).with_for_update())

        if await self.has_outstanding_loan(user_id):
            raise ValidationFailed.single(
                "loan_dues", "Please clear your existing dues to apply for next loan."
            )

        loan = Loan(
            user_id=user_id,
            duration=duration,
            total_amount_paid=Decimal("0.00"),
            status=True,
            version=1,
            **schedule
        )

        self.db.add(loan)
        await self.db.commit()
        await self.db.refresh(loan)

        logger.info(
            "Loan %s created for user %s: amount=%s duration=%s total=%s",
            loan.id, user_id, loan.amount, loan.duration, loan.total_amount
        )
        return loan

    # ------------------------------------------------------------------
    # Repayment ledger
    # ------------------------------------------------------------------

    async def get_loan(self, loan_id: int) -> Optional[Loan]:
        result = await self.db.execute(select(Loan).where(Loan.id == loan_id))
        return result.scalar_one_or_none()

    async def get_repayments(self, loan_id: int):
        result = await self.db.execute(
            select(Repayment).where(Repayment.loan_id == loan_id).order_by(Repayment.id)
        )
        return result.scalars().all()

    async def _read_ledger(self, loan_id: int):
        # Column select bypasses the identity map so every attempt sees committed state
        result = await self.db.execute(
            select(
                Loan.user_id,
                Loan.total_amount,
                Loan.total_amount_paid,
                Loan.status,
                Loan.version,
            )
            .where(Loan.id == loan_id)
            .with_for_update()
        )
        return result.one_or_none()

    async def repay_loan(self, loan_id: int, acting_user_id: int, amount: Number) -> RepaymentResponse:
        """
        Apply a repayment to a loan.

        The balance is read under a row lock and written back with a
        compare-and-swap on Loan.version, together with the Repayment insert,
        in a single transaction. When the swap loses to a concurrent
        repayment the ledger is re-read and the checks run again against the
        new balance.
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationFailed.single("amount", "The amount must be greater than 0.")
        attempt = 0

        while True:
            attempt += 1
            ledger = await self._read_ledger(loan_id)

            if ledger is None:
                raise NotFound.single("loan", "Loan not found.")

            if ledger.user_id != acting_user_id:
                raise ValidationFailed.single("loan", "This loan does not belong to you.")

            if not ledger.status:
                raise ValidationFailed.single("loan_dues", "This loan has already been paid in full.")

            remaining = ledger.total_amount - ledger.total_amount_paid
            if amount > remaining:
                logger.info(
                    "Rejected repayment of %s on loan %s: only %s remaining",
                    amount, loan_id, remaining
                )
                raise BadRequest.single(
                    "amount",
                    f"You have only {format_amount(remaining)} as dues. "
                    "Reattempt with exact remaining amount."
                )

            new_total_paid = ledger.total_amount_paid + amount
            amount_remaining = ledger.total_amount - (ledger.total_amount_paid + amount)
            closes_loan = amount == remaining

            try:
                result = await self.db.execute(
                    update(Loan)
                    .where(Loan.id == loan_id, Loan.version == ledger.version)
                    .values(
                        total_amount_paid=new_total_paid,
                        status=not closes_loan,
                        version=ledger.version + 1,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    logger.info(
                        "Loan %s changed concurrently (version %s), retrying repayment (attempt %s)",
                        loan_id, ledger.version, attempt
                    )
                    continue

                self.db.add(Repayment(
                    loan_id=loan_id,
                    amount=amount,
                    amount_remaining=amount_remaining,
                ))
                await self.db.commit()
            except SQLAlchemyError:
                await self.db.rollback()
                logger.exception("Repayment on loan %s rolled back", loan_id)
                raise TransactionFailed.single(
                    "transaction", "Repayment could not be processed. Please try again."
                )

            logger.info(
                "Repayment of %s accepted on loan %s, remaining %s%s",
                amount, loan_id, amount_remaining, " (closed)" if closes_loan else ""
            )
            return RepaymentResponse(
                message="Repayment made successfully!",
                remaining=ledger.total_amount - new_total_paid,
            )

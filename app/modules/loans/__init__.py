# Loans module
from app.modules.loans.models import Loan, Repayment, OTHER_CHARGES
from app.modules.loans.services import LoanService
from app.modules.loans.router import router

__all__ = [
    "Loan", "Repayment", "OTHER_CHARGES",
    "LoanService", "router"
]

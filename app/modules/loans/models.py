from sqlalchemy import Column, Integer, Numeric, Boolean, ForeignKey, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from decimal import Decimal
from app.core.database import Base

# Flat fee charged on every loan at origination
OTHER_CHARGES = Decimal("250.00")

# Largest value a Numeric(14,2) money column holds
MAX_AMOUNT = Decimal("999999999999.99")


class Loan(Base):
    """
    A single loan and its schedule-of-record.

    amount, interest_rate, calculated_interest, other_charges and
    total_amount are fixed at origination. Only the repayment ledger
    touches total_amount_paid, status and version afterwards.
    """
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Schedule of record
    amount = Column(Numeric(14, 2), nullable=False)
    duration = Column(Integer, nullable=False, default=12)
    interest_rate = Column(Numeric(5, 2), nullable=False)
    calculated_interest = Column(Numeric(14, 2), nullable=False)
    other_charges = Column(Numeric(8, 2), nullable=False, default=OTHER_CHARGES)
    total_amount = Column(Numeric(14, 2), nullable=False)

    # Ledger state
    total_amount_paid = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    status = Column(Boolean, nullable=False, default=True)  # True while dues remain
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    user = relationship("User", back_populates="loans")
    repayments = relationship(
        "Repayment",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="Repayment.id",
        lazy="noload"
    )

    @property
    def remaining_amount(self) -> Decimal:
        return self.total_amount - self.total_amount_paid

    def __repr__(self):
        return f"<Loan(id={self.id}, user_id={self.user_id}, total={self.total_amount}, paid={self.total_amount_paid})>"


class Repayment(Base):
    """Append-only record of one accepted repayment"""
    __tablename__ = "repayments"

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    amount_remaining = Column(Numeric(14, 2), nullable=False)  # balance after this payment

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    loan = relationship("Loan", back_populates="repayments")

"""Debts module: supplier debts, payments and recognition."""

from procure_modules.debts.models import Debt, DebtPayment, DebtView
from procure_modules.debts.service import DebtService, PendingDebt

__all__ = ["Debt", "DebtPayment", "DebtService", "DebtView", "PendingDebt"]

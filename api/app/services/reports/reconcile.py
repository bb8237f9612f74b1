"""Charge/payment reconciliation.

What is still owed on a charge is its face amount minus everything allocated
to it.  The result may be zero or negative when a charge is over-allocated;
that is reported as-is, never raised.  Which charges a report looks at (cash
or accrual) is the caller's business.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.reports.common import ZERO, dec
from app.services.reports.fetchers import fetch_allocation_totals


def allocated_total(allocation_amounts: Iterable) -> Decimal:
    return sum((dec(a) for a in allocation_amounts), ZERO)


def charge_balance(charge_amount, allocated) -> Decimal:
    return dec(charge_amount) - dec(allocated)


def days_overdue(due: date, today: date) -> int:
    """Whole days past due; negative when the charge is not yet due."""
    return (today - due).days


def days_since(d: date, today: date) -> int:
    """Whole days elapsed, clamped at zero for future dates."""
    return max(0, (today - d).days)


async def outstanding_balances(db: AsyncSession, charges: Iterable) -> dict:
    """charge.id → balance for each given Charge, using one grouped allocation query."""
    charges = list(charges)
    totals = await fetch_allocation_totals(db, [c.id for c in charges])
    return {c.id: charge_balance(c.amount, totals.get(c.id, ZERO)) for c in charges}

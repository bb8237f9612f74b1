import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Tenant(Base):
    """Tenant directory with minimal contact info."""
    __tablename__ = "tenants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), index=True
    )
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str | None] = mapped_column(String(320))
    phone: Mapped[str | None] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Lease(Base):
    """Defines occupancy and rent terms for a unit."""
    __tablename__ = "leases"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    unit_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("units.id"), index=True)
    status: Mapped[str] = mapped_column(
        String(30), default="ACTIVE"
    )  # DRAFT | PENDING_SIGNATURE | ACTIVE | EXPIRED | TERMINATED
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)  # None = month-to-month
    rent_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    security_deposit: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal(0))
    rent_due_day: Mapped[int] = mapped_column(Integer, default=1)


class LeaseTenant(Base):
    __tablename__ = "lease_tenants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lease_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("leases.id"), index=True)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tenants.id"), index=True)
    role: Mapped[str] = mapped_column(String(20), default="PRIMARY")  # PRIMARY | CO_TENANT | OCCUPANT


class Charge(Base):
    """What was billed. Drives delinquency tracking."""
    __tablename__ = "charges"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lease_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("leases.id"), index=True)
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tenants.id"), nullable=True, index=True
    )
    type: Mapped[str] = mapped_column(
        String(30), default="RENT"
    )  # RENT | LATE_FEE | PET_RENT | PARKING | STORAGE | UTILITY | OTHER
    description: Mapped[str | None] = mapped_column(Text)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    due_date: Mapped[date] = mapped_column(Date, index=True)
    status: Mapped[str] = mapped_column(String(20), default="DUE")  # DUE | PARTIAL | PAID | VOID
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Payment(Base):
    """What was actually collected."""
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lease_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("leases.id"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    method: Mapped[str | None] = mapped_column(String(50))  # ACH | CARD | CHECK | CASH | OTHER
    status: Mapped[str] = mapped_column(
        String(20), default="PENDING"
    )  # PENDING | COMPLETED | FAILED | REFUNDED | CANCELLED
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class PaymentAllocation(Base):
    """The part of one payment applied to one charge."""
    __tablename__ = "payment_allocations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    payment_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("payments.id"), index=True)
    charge_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("charges.id"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))

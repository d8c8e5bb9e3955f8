"""Discrepancy and duplicate reports raised against lots and jobs.

Reports are advisory bookkeeping: they flag a lot (``Lot.report`` /
``Lot.report_duplicate``) until an office user accepts or declines them,
but they never block the lifecycle.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from lotkeeper.database import Base

REPORT_PENDING = "pending"
REPORT_ACCEPTED = "accepted"
REPORT_DECLINED = "declined"


class LotReport(Base):
    __tablename__ = "lot_reports"

    lot_report_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lot_id: Mapped[int] = mapped_column(Integer, ForeignKey("lot.lot_id"), nullable=False, index=True)
    reported_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.user_id"))
    # pending | accepted | declined
    report_status: Mapped[str] = mapped_column(String(20), default=REPORT_PENDING, index=True)
    reported_on: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    resolved_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.user_id"))
    resolved_on: Mapped[datetime | None] = mapped_column(DateTime)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class LotDuplicate(Base):
    __tablename__ = "lot_duplicate"

    lot_duplicate_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lot_id: Mapped[int] = mapped_column(Integer, ForeignKey("lot.lot_id"), nullable=False, index=True)
    reported_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.user_id"))
    report_status: Mapped[str] = mapped_column(String(20), default=REPORT_PENDING, index=True)
    reported_on: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    resolved_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.user_id"))
    resolved_on: Mapped[datetime | None] = mapped_column(DateTime)
    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class JobReport(Base):
    __tablename__ = "job_reports"

    job_report_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    reported_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.user_id"))
    # e.g. "lacking" | "extra" | "mismatch"
    discrepancy_type: Mapped[str | None] = mapped_column(String(50))
    report_status: Mapped[str] = mapped_column(String(20), default=REPORT_PENDING, index=True)
    reported_on: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    resolved_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.user_id"))
    resolved_on: Mapped[datetime | None] = mapped_column(DateTime)

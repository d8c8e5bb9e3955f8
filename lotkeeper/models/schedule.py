"""Schedule batches: inbound arrivals and outbound releases.

A ScheduleInbound groups the Lots an office user scheduled for one job on
one inbound date; its ``user_id`` is the scheduler recorded on every
inbound record confirmed from those lots.

A ScheduleOutbound groups the inbound records selected for one release.
An inbound record may sit in at most one *active* selection
(``is_outbounded = false``) at a time.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lotkeeper.database import Base


class ScheduleInbound(Base):
    __tablename__ = "scheduleinbounds"

    schedule_inbound_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.user_id"), nullable=False)
    job_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    inbound_date: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    lots = relationship("Lot", back_populates="schedule_inbound")


class ScheduleOutbound(Base):
    __tablename__ = "scheduleoutbounds"

    schedule_outbound_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.user_id"), nullable=False)

    # ── Release details ──────────────────────────────────────
    release_date: Mapped[datetime | None] = mapped_column(DateTime)
    release_warehouse: Mapped[str | None] = mapped_column(String(150))
    storage_release_location: Mapped[str | None] = mapped_column(String(150))
    transport_vendor: Mapped[str | None] = mapped_column(String(150))
    lot_release_weight: Mapped[float | None] = mapped_column(Float)

    # ── Export / container ───────────────────────────────────
    # release | export
    outbound_type: Mapped[str | None] = mapped_column(String(30))
    export_date: Mapped[datetime | None] = mapped_column(DateTime)
    stuffing_date: Mapped[datetime | None] = mapped_column(DateTime)
    delivery_date: Mapped[datetime | None] = mapped_column(DateTime)
    container_no: Mapped[str | None] = mapped_column(String(50))
    seal_no: Mapped[str | None] = mapped_column(String(50))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    selected_inbounds = relationship("SelectedInbound", back_populates="schedule_outbound")


class SelectedInbound(Base):
    __tablename__ = "selectedinbounds"

    selected_inbound_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    schedule_outbound_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scheduleoutbounds.schedule_outbound_id"), nullable=False, index=True
    )
    inbound_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inbounds.inbound_id"), nullable=False, index=True
    )
    # Denormalised for listing queries
    job_no: Mapped[str] = mapped_column(String(50), nullable=False)
    lot_no: Mapped[int] = mapped_column(Integer, nullable=False)
    is_outbounded: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    schedule_outbound = relationship("ScheduleOutbound", back_populates="selected_inbounds")
    inbound = relationship("Inbound")

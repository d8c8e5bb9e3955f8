"""Aggregate model imports for Alembic auto-detection."""

# Users and reference data
from lotkeeper.models.user import User, UserRole  # noqa: F401
from lotkeeper.models.reference import (  # noqa: F401
    Brand,
    Commodity,
    ExLmeWarehouse,
    ExWarehouseLocation,
    InboundWarehouse,
    Shape,
)

# Inbound side
from lotkeeper.models.schedule import ScheduleInbound, ScheduleOutbound, SelectedInbound  # noqa: F401
from lotkeeper.models.lot import Lot  # noqa: F401
from lotkeeper.models.inbound import BundlePhoto, BundlePiece, Inbound, InboundBundle  # noqa: F401
from lotkeeper.models.report import JobReport, LotDuplicate, LotReport  # noqa: F401

# Outbound side
from lotkeeper.models.outbound import Outbound, OutboundTransaction  # noqa: F401

# Audit
from lotkeeper.models.activity_log import ActivityLog  # noqa: F401

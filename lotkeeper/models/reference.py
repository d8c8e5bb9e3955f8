"""Reference tables that lot names resolve against.

Lots arrive (from Excel or a manual schedule) carrying display names such
as "Copper" or "Cathode".  Confirmation turns those names into foreign keys
on the inbound record via the lookup resolver.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from lotkeeper.database import Base


class Commodity(Base):
    __tablename__ = "commodities"

    commodity_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    commodity_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class Brand(Base):
    __tablename__ = "brands"

    brand_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    brand_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class Shape(Base):
    __tablename__ = "shapes"

    shape_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shape_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class ExLmeWarehouse(Base):
    __tablename__ = "exlmewarehouses"

    ex_lme_warehouse_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ex_lme_warehouse_name: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)


class InboundWarehouse(Base):
    __tablename__ = "inboundwarehouses"

    inbound_warehouse_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inbound_warehouse_name: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)


class ExWarehouseLocation(Base):
    __tablename__ = "exwarehouselocations"

    ex_warehouse_location_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ex_warehouse_location_name: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)

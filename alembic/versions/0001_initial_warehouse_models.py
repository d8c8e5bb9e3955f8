"""Initial warehouse schema: users, reference data, lots, inbounds, outbounds.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19

Run with:
    alembic upgrade head
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    ]


def _reference_table(table: str, prefix: str, length: int) -> None:
    op.create_table(
        table,
        sa.Column(f"{prefix}_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(f"{prefix}_name", sa.String(length), nullable=False, unique=True),
    )


def upgrade() -> None:
    # ── Users ────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True, index=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column(
            "role",
            sa.Enum("ADMINISTRATOR", "OFFICE", "SUPERVISOR", "CREW", name="userrole"),
            server_default="CREW",
        ),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        *_timestamps(),
    )

    # ── Reference data ───────────────────────────────────────

    _reference_table("commodities", "commodity", 100)
    _reference_table("brands", "brand", 100)
    _reference_table("shapes", "shape", 100)
    _reference_table("exlmewarehouses", "ex_lme_warehouse", 150)
    _reference_table("inboundwarehouses", "inbound_warehouse", 150)
    _reference_table("exwarehouselocations", "ex_warehouse_location", 150)

    # ── Schedules ────────────────────────────────────────────

    op.create_table(
        "scheduleinbounds",
        sa.Column("schedule_inbound_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("job_no", sa.String(50), nullable=False, index=True),
        sa.Column("inbound_date", sa.DateTime(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "scheduleoutbounds",
        sa.Column("schedule_outbound_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("release_date", sa.DateTime(), nullable=True),
        sa.Column("release_warehouse", sa.String(150), nullable=True),
        sa.Column("storage_release_location", sa.String(150), nullable=True),
        sa.Column("transport_vendor", sa.String(150), nullable=True),
        sa.Column("lot_release_weight", sa.Float(), nullable=True),
        sa.Column("outbound_type", sa.String(30), nullable=True),
        sa.Column("export_date", sa.DateTime(), nullable=True),
        sa.Column("stuffing_date", sa.DateTime(), nullable=True),
        sa.Column("delivery_date", sa.DateTime(), nullable=True),
        sa.Column("container_no", sa.String(50), nullable=True),
        sa.Column("seal_no", sa.String(50), nullable=True),
        *_timestamps(),
    )

    # ── Lots ─────────────────────────────────────────────────

    op.create_table(
        "lot",
        sa.Column("lot_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("job_no", sa.String(50), nullable=False, index=True),
        sa.Column("lot_no", sa.Integer(), nullable=False),
        sa.Column(
            "schedule_inbound_id", sa.Integer(),
            sa.ForeignKey("scheduleinbounds.schedule_inbound_id"), nullable=True, index=True,
        ),
        sa.Column("commodity", sa.String(100), nullable=True),
        sa.Column("brand", sa.String(100), nullable=True),
        sa.Column("shape", sa.String(100), nullable=True),
        sa.Column("ex_lme_warehouse", sa.String(150), nullable=True),
        sa.Column("inbound_warehouse", sa.String(150), nullable=True),
        sa.Column("ex_warehouse_location", sa.String(150), nullable=True),
        sa.Column("ex_warehouse_lot", sa.String(50), nullable=True, index=True),
        sa.Column("ex_warehouse_warrant", sa.String(50), nullable=True),
        sa.Column("crew_lot_no", sa.Integer(), nullable=True),
        sa.Column("expected_bundle_count", sa.Integer(), server_default="0"),
        sa.Column("net_weight", sa.Float(), nullable=True),
        sa.Column("gross_weight", sa.Float(), nullable=True),
        sa.Column("actual_weight", sa.Float(), nullable=True),
        sa.Column("sticker_weight", sa.Float(), nullable=True),
        sa.Column("status", sa.String(20), server_default="Pending", index=True),
        sa.Column("is_confirm", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_weighted", sa.Boolean(), server_default=sa.false()),
        sa.Column("report", sa.Boolean(), server_default=sa.false()),
        sa.Column("report_duplicate", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_duplicated", sa.Boolean(), server_default=sa.false()),
        sa.Column("inbound_date", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("job_no", "lot_no", name="uq_lot_job_lot"),
    )

    # ── Inbounds ─────────────────────────────────────────────

    op.create_table(
        "inbounds",
        sa.Column("inbound_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("job_no", sa.String(50), nullable=False, index=True),
        sa.Column("lot_no", sa.Integer(), nullable=False),
        sa.Column("barcode_no", sa.String(50), nullable=True),
        sa.Column("lot_id", sa.Integer(), sa.ForeignKey("lot.lot_id"), nullable=True, index=True),
        sa.Column("commodity_id", sa.Integer(), sa.ForeignKey("commodities.commodity_id")),
        sa.Column("shape_id", sa.Integer(), sa.ForeignKey("shapes.shape_id")),
        sa.Column("brand_id", sa.Integer(), sa.ForeignKey("brands.brand_id")),
        sa.Column(
            "ex_lme_warehouse_id", sa.Integer(),
            sa.ForeignKey("exlmewarehouses.ex_lme_warehouse_id"),
        ),
        sa.Column(
            "inbound_warehouse_id", sa.Integer(),
            sa.ForeignKey("inboundwarehouses.inbound_warehouse_id"),
        ),
        sa.Column(
            "ex_warehouse_location_id", sa.Integer(),
            sa.ForeignKey("exwarehouselocations.ex_warehouse_location_id"),
        ),
        sa.Column("ex_warehouse_lot", sa.String(50), nullable=True, index=True),
        sa.Column("ex_warehouse_warrant", sa.String(50), nullable=True),
        sa.Column("crew_lot_no", sa.Integer(), nullable=True),
        sa.Column("no_of_bundle", sa.Integer(), server_default="0"),
        sa.Column("gross_weight", sa.Float(), nullable=True),
        sa.Column("net_weight", sa.Float(), nullable=True),
        sa.Column("actual_weight", sa.Float(), nullable=True),
        sa.Column("sticker_weight", sa.Float(), nullable=True),
        sa.Column("is_weighted", sa.Boolean(), server_default=sa.false()),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("processed_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("inbound_date", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("schedule_inbound_date", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("job_no", "lot_no", name="uq_inbound_job_lot"),
    )

    op.create_table(
        "inboundbundles",
        sa.Column("inbound_bundle_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "inbound_id", sa.Integer(),
            sa.ForeignKey("inbounds.inbound_id", ondelete="CASCADE"), nullable=True, index=True,
        ),
        sa.Column(
            "lot_id", sa.Integer(),
            sa.ForeignKey("lot.lot_id", ondelete="CASCADE"), nullable=True, index=True,
        ),
        sa.Column("bundle_no", sa.Integer(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("sticker_weight", sa.Float(), nullable=True),
        sa.Column("melt_no", sa.String(100), nullable=True),
        sa.Column("is_outbounded", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_relabelled", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_rebundled", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_repack_provided", sa.Boolean(), server_default=sa.false()),
        sa.Column("no_of_metal_strap", sa.Integer(), nullable=True),
        sa.Column("repack_description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(inbound_id IS NULL) <> (lot_id IS NULL)", name="ck_bundle_single_parent"
        ),
        sa.UniqueConstraint("inbound_id", "bundle_no", name="uq_bundle_inbound_no"),
        sa.UniqueConstraint("lot_id", "bundle_no", name="uq_bundle_lot_no"),
    )

    op.create_table(
        "bundle_pieces",
        sa.Column("bundle_piece_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "inbound_bundle_id", sa.Integer(),
            sa.ForeignKey("inboundbundles.inbound_bundle_id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("piece_type", sa.String(100), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
    )

    op.create_table(
        "bundle_photos",
        sa.Column("bundle_photo_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "inbound_bundle_id", sa.Integer(),
            sa.ForeignKey("inboundbundles.inbound_bundle_id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("tag", sa.String(10), nullable=False),
        sa.Column("image_path", sa.String(500), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "selectedinbounds",
        sa.Column("selected_inbound_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "schedule_outbound_id", sa.Integer(),
            sa.ForeignKey("scheduleoutbounds.schedule_outbound_id"), nullable=False, index=True,
        ),
        sa.Column(
            "inbound_id", sa.Integer(),
            sa.ForeignKey("inbounds.inbound_id"), nullable=False, index=True,
        ),
        sa.Column("job_no", sa.String(50), nullable=False),
        sa.Column("lot_no", sa.Integer(), nullable=False),
        sa.Column("is_outbounded", sa.Boolean(), server_default=sa.false(), index=True),
        *_timestamps(),
    )

    # ── Reports ──────────────────────────────────────────────

    for table, pk in (("lot_reports", "lot_report_id"), ("lot_duplicate", "lot_duplicate_id")):
        extra = [sa.Column("is_resolved", sa.Boolean(), server_default=sa.false())] if table == "lot_duplicate" else []
        op.create_table(
            table,
            sa.Column(pk, sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("lot_id", sa.Integer(), sa.ForeignKey("lot.lot_id"), nullable=False, index=True),
            sa.Column("reported_by", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=True),
            sa.Column("report_status", sa.String(20), server_default="pending", index=True),
            sa.Column("reported_on", sa.DateTime(), server_default=sa.func.now()),
            sa.Column("resolved_by", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=True),
            sa.Column("resolved_on", sa.DateTime(), nullable=True),
            *extra,
            sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        )

    op.create_table(
        "job_reports",
        sa.Column("job_report_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("job_no", sa.String(50), nullable=False, index=True),
        sa.Column("reported_by", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("discrepancy_type", sa.String(50), nullable=True),
        sa.Column("report_status", sa.String(20), server_default="pending", index=True),
        sa.Column("reported_on", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("resolved_by", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("resolved_on", sa.DateTime(), nullable=True),
    )

    # ── Outbounds ────────────────────────────────────────────

    op.create_table(
        "outbounds",
        sa.Column("outbound_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("grn_no", sa.String(100), nullable=False, unique=True, index=True),
        sa.Column("job_identifier", sa.String(50), nullable=False, index=True),
        sa.Column("release_date", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("driver_name", sa.String(150), nullable=True),
        sa.Column("driver_identity_no", sa.String(50), nullable=True),
        sa.Column("truck_plate_no", sa.String(30), nullable=True),
        sa.Column("warehouse_staff", sa.String(150), nullable=True),
        sa.Column("warehouse_supervisor", sa.String(150), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("driver_signature", sa.LargeBinary(), nullable=True),
        sa.Column("warehouse_staff_signature", sa.LargeBinary(), nullable=True),
        sa.Column("warehouse_supervisor_signature", sa.LargeBinary(), nullable=True),
        sa.Column("grn_image", sa.String(500), nullable=True),
        sa.Column("grn_preview_image", sa.String(500), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("uom", sa.String(10), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "outboundtransactions",
        sa.Column("outbound_transaction_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "outbound_id", sa.Integer(),
            sa.ForeignKey("outbounds.outbound_id"), nullable=False, index=True,
        ),
        sa.Column("inbound_id", sa.Integer(), sa.ForeignKey("inbounds.inbound_id"), nullable=False),
        sa.Column(
            "schedule_outbound_id", sa.Integer(),
            sa.ForeignKey("scheduleoutbounds.schedule_outbound_id"), nullable=False,
        ),
        sa.Column("job_no", sa.String(50), nullable=False, index=True),
        sa.Column("lot_no", sa.Integer(), nullable=False),
        sa.Column("commodity", sa.String(100), nullable=True),
        sa.Column("brand", sa.String(100), nullable=True),
        sa.Column("shape", sa.String(100), nullable=True),
        sa.Column("ex_lme_warehouse", sa.String(150), nullable=True),
        sa.Column("ex_warehouse_lot", sa.String(50), nullable=True),
        sa.Column("ex_warehouse_warrant", sa.String(50), nullable=True),
        sa.Column("no_of_bundle", sa.Integer(), server_default="0"),
        sa.Column("gross_weight", sa.Float(), nullable=True),
        sa.Column("net_weight", sa.Float(), nullable=True),
        sa.Column("actual_weight", sa.Float(), nullable=True),
        sa.Column("release_date", sa.DateTime(), nullable=True),
        sa.Column("release_warehouse", sa.String(150), nullable=True),
        sa.Column("storage_release_location", sa.String(150), nullable=True),
        sa.Column("transport_vendor", sa.String(150), nullable=True),
        sa.Column("lot_release_weight", sa.Float(), nullable=True),
        sa.Column("outbound_type", sa.String(30), nullable=True),
        sa.Column("export_date", sa.DateTime(), nullable=True),
        sa.Column("stuffing_date", sa.DateTime(), nullable=True),
        sa.Column("container_no", sa.String(50), nullable=True),
        sa.Column("seal_no", sa.String(50), nullable=True),
        sa.Column("outbounded_by", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=False),
        *_timestamps(),
    )

    # ── Audit ────────────────────────────────────────────────

    op.create_table(
        "activity_logs",
        sa.Column("activity_log_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=True, index=True),
        sa.Column("action", sa.String(50), nullable=False, index=True),
        sa.Column("entity_type", sa.String(50), nullable=False, index=True),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("entity_code", sa.String(100), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False, index=True),
    )


def downgrade() -> None:
    for table in (
        "activity_logs",
        "outboundtransactions",
        "outbounds",
        "job_reports",
        "lot_duplicate",
        "lot_reports",
        "selectedinbounds",
        "bundle_photos",
        "bundle_pieces",
        "inboundbundles",
        "inbounds",
        "lot",
        "scheduleoutbounds",
        "scheduleinbounds",
        "exwarehouselocations",
        "inboundwarehouses",
        "exlmewarehouses",
        "shapes",
        "brands",
        "commodities",
        "users",
    ):
        op.drop_table(table)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)

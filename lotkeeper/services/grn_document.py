"""GRN document rendering.

Outbound services build a :class:`GrnDocument` and hand it to a renderer;
the renderer returns the PDF bytes, a PNG preview and where both were
written.  ``ReportLabGrnRenderer`` is the default; tests pass their own
object with a ``render`` method.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import Protocol

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from lotkeeper.config import settings

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME = re.compile(r'[/\\?%*:|"<>]')


@dataclass
class GrnLot:
    lot_no: str
    bundles: int
    gross_weight_mt: str
    net_weight_mt: str


@dataclass
class GrnDocument:
    our_reference: str
    grn_no: str
    release_date: str | None = None
    warehouse: str | None = None
    container_and_seal_no: str | None = None
    commodity: str | None = None
    shape: str | None = None
    brand: str | None = None
    uom: str | None = "MT"
    lots: list[GrnLot] = field(default_factory=list)
    driver_name: str | None = None
    driver_identity_no: str | None = None
    truck_plate_no: str | None = None
    warehouse_staff: str | None = None
    warehouse_supervisor: str | None = None
    driver_signature: bytes | None = None
    warehouse_staff_signature: bytes | None = None
    warehouse_supervisor_signature: bytes | None = None

    @property
    def total_bundles(self) -> int:
        return sum(int(lot.bundles or 0) for lot in self.lots)


@dataclass
class RenderedGrn:
    pdf_bytes: bytes
    preview_bytes: bytes
    pdf_path: str
    preview_path: str


class GrnRenderer(Protocol):
    def render(self, document: GrnDocument) -> RenderedGrn: ...


def safe_grn_filename(grn_no: str) -> str:
    return _UNSAFE_FILENAME.sub("_", grn_no)


def _text(value) -> str:
    return "-" if value in (None, "") else str(value)


class ReportLabGrnRenderer:
    """Draw the GRN on an A4 canvas and a PNG summary with Pillow."""

    def __init__(self, output_dir: str | None = None):
        self.output_dir = output_dir or settings.grn_output_dir

    # ── PDF ──────────────────────────────────────────────────

    def _draw_signature(self, c, data: bytes | None, x: float, y: float, label: str) -> None:
        c.setFont("Helvetica", 8)
        c.drawString(x, y - 12, label)
        if not data:
            return
        try:
            with Image.open(BytesIO(data)) as img:
                c.drawImage(ImageReader(img.convert("RGBA")), x, y, 90, 30, mask="auto")
        except (OSError, ValueError):
            logger.warning("Skipping unreadable %s signature", label)

    def render_pdf(self, doc: GrnDocument) -> bytes:
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=A4)
        width, height = A4
        side_margin = 48
        content_width = width - 2 * side_margin

        y = height - 60
        c.setFont("Helvetica-Bold", 16)
        c.drawCentredString(width / 2, y, "Goods Release Note")
        y -= 30

        header = [
            ["Our Reference", _text(doc.our_reference), "GRN No", _text(doc.grn_no)],
            ["Release Date", _text(doc.release_date), "Warehouse", _text(doc.warehouse)],
            ["Container / Seal", _text(doc.container_and_seal_no), "UOM", _text(doc.uom)],
            ["Commodity", _text(doc.commodity), "Shape", _text(doc.shape)],
            ["Brand", _text(doc.brand), "", ""],
        ]
        table = Table(header, colWidths=[90, content_width / 2 - 90, 90, content_width / 2 - 90])
        table.setStyle(TableStyle([
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTNAME", (2, 0), (2, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("BACKGROUND", (0, 0), (-1, -1), colors.whitesmoke),
        ]))
        _, th = table.wrap(content_width, y)
        table.drawOn(c, side_margin, y - th)
        y -= th + 20

        rows = [["Lot No", "Bundles", "Gross (MT)", "Net (MT)"]]
        rows += [[lot.lot_no, str(lot.bundles), lot.gross_weight_mt, lot.net_weight_mt] for lot in doc.lots]
        rows.append(["Total", str(doc.total_bundles), "", ""])
        lots_table = Table(rows, colWidths=[content_width * 0.4] + [content_width * 0.2] * 3, repeatRows=1)
        lots_table.setStyle(TableStyle([
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ]))
        _, th = lots_table.wrap(content_width, y - 200)
        if th > y - 200:
            c.showPage()
            y = height - 60
        lots_table.drawOn(c, side_margin, y - th)

        c.setFont("Helvetica", 9)
        c.drawString(side_margin, 170, f"Driver: {_text(doc.driver_name)}")
        c.drawString(side_margin + 180, 170, f"IC: {_text(doc.driver_identity_no)}")
        c.drawString(side_margin + 330, 170, f"Truck: {_text(doc.truck_plate_no)}")
        c.drawString(side_margin, 100, f"Warehouse Staff: {_text(doc.warehouse_staff)}")
        c.drawString(side_margin + 260, 100, f"Supervisor: {_text(doc.warehouse_supervisor)}")

        self._draw_signature(c, doc.driver_signature, side_margin, 130, "Driver signature")
        self._draw_signature(c, doc.warehouse_staff_signature, side_margin, 60, "Staff signature")
        self._draw_signature(c, doc.warehouse_supervisor_signature, side_margin + 260, 60, "Supervisor signature")

        c.showPage()
        c.save()
        return buffer.getvalue()

    # ── Preview ──────────────────────────────────────────────

    def render_preview(self, doc: GrnDocument) -> bytes:
        lines = [
            f"GRN {doc.grn_no}",
            f"Ref {doc.our_reference}   Release {_text(doc.release_date)}",
            f"Warehouse {_text(doc.warehouse)}",
            f"{_text(doc.commodity)} / {_text(doc.shape)} / {_text(doc.brand)}",
            "",
        ]
        lines += [
            f"{lot.lot_no:<24} {lot.bundles:>4}  {lot.gross_weight_mt:>10}  {lot.net_weight_mt:>10}"
            for lot in doc.lots
        ]
        lines.append(f"{'Total':<24} {doc.total_bundles:>4}")

        font = ImageFont.load_default()
        line_height = 16
        img = Image.new("RGB", (640, 40 + line_height * len(lines)), "white")
        draw = ImageDraw.Draw(img)
        for i, line in enumerate(lines):
            draw.text((20, 20 + i * line_height), line, fill="black", font=font)

        out = BytesIO()
        img.save(out, format="PNG")
        return out.getvalue()

    def render(self, document: GrnDocument) -> RenderedGrn:
        pdf_bytes = self.render_pdf(document)
        preview_bytes = self.render_preview(document)

        os.makedirs(self.output_dir, exist_ok=True)
        name = safe_grn_filename(document.grn_no)
        pdf_path = os.path.join(self.output_dir, f"GRN_{name}.pdf")
        preview_path = os.path.join(self.output_dir, f"GRN_{name}.png")
        with open(pdf_path, "wb") as f:
            f.write(pdf_bytes)
        with open(preview_path, "wb") as f:
            f.write(preview_bytes)

        logger.info("Rendered GRN %s (%d bytes)", document.grn_no, len(pdf_bytes))
        return RenderedGrn(pdf_bytes, preview_bytes, pdf_path, preview_path)


def get_grn_renderer() -> GrnRenderer:
    """FastAPI dependency; overridden in tests."""
    return ReportLabGrnRenderer()

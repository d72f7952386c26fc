"""
Report Service
Printable PDF documents: the material record report and the QR label sheet
"""

import io
import logging
from typing import List, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from vimarsha.schemas.material import MaterialRecord

logger = logging.getLogger(__name__)

REPORT_TITLE = "INDIAN RAILWAYS - MATERIAL RECORD"
REPORT_ISSUER = "Issued by: Materials & Track Maintenance Division"
REPORT_FOOTER = "This document is system-generated and valid for official Railways use."
EMPTY_VALUE = "-"

REPORT_SECTIONS: List[Tuple[str, List[Tuple[str, str]]]] = [
    ("1. Core Details", [
        ("Material ID", "material_id"),
        ("Manufacturer ID", "manufacturer_id"),
        ("Manufacturer Name", "manufacturer_name"),
    ]),
    ("2. Technical Specifications", [
        ("Fitting Type", "fitting_type"),
        ("Drawing Number", "drawing_number"),
        ("Material Specification", "material_spec"),
        ("Weight (kg)", "weight_kg"),
        ("Board Gauge", "board_gauge"),
        ("Manufacturing Date", "manufacturing_date"),
        ("Expected Service Life", "expected_life_years"),
    ]),
    ("3. UDM & Purchase Details", [
        ("PO Number", "purchase_order_number"),
        ("Batch Number", "batch_number"),
        ("Depot Code", "depot_code"),
        ("Depot Entry Date", "depot_entry_date"),
        ("UDM Lot Number", "udm_lot_number"),
        ("Inspection Officer", "inspection_officer"),
    ]),
    ("4. TMS & Lifecycle Information", [
        ("TMS Track ID", "tms_track_id"),
        ("GPS Location", "gps_location"),
        ("Installation Status", "installation_status"),
        ("Dispatch Date", "dispatch_date"),
        ("Warranty Expiry", "warranty_expiry"),
        ("Failure Count", "failure_count"),
        ("Last Maintenance Date", "last_maintenance_date"),
    ]),
]


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name='ReportTitle',
        parent=styles['Title'],
        fontSize=18,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold',
        spaceAfter=6,
    ))
    styles.add(ParagraphStyle(
        name='ReportIssuer',
        parent=styles['Normal'],
        fontSize=12,
        alignment=TA_CENTER,
        spaceAfter=14,
    ))
    styles.add(ParagraphStyle(
        name='SectionHeader',
        parent=styles['Normal'],
        fontSize=14,
        fontName='Helvetica-Bold',
        spaceBefore=10,
        spaceAfter=6,
        keepWithNext=True,
    ))
    styles.add(ParagraphStyle(
        name='FieldValue',
        parent=styles['Normal'],
        fontSize=11,
        leading=14,
    ))
    return styles


def _draw_frame(canvas, doc):
    """Border on every page, footer line at the bottom"""
    width, height = A4
    canvas.saveState()
    canvas.setStrokeColor(colors.Color(0.2, 0.2, 0.2))
    canvas.setLineWidth(1.2)
    canvas.rect(20, 20, width - 40, height - 40)
    canvas.setFont('Helvetica-Oblique', 10)
    canvas.drawCentredString(width / 2, 40, REPORT_FOOTER)
    canvas.restoreState()


def _value(record: MaterialRecord, attr: str) -> str:
    value = str(getattr(record, attr, "") or "").strip()
    if not value:
        return EMPTY_VALUE
    if attr == "expected_life_years":
        return f"{value} years"
    return value


def material_report_pdf(record: MaterialRecord) -> bytes:
    """
    Render the full lifecycle record of a material as an A4 PDF.

    Fields are grouped in the same four sections as the printed railway
    record; blank fields show a dash.
    """
    styles = _styles()
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=1.5 * cm,
        rightMargin=1.5 * cm,
        topMargin=1.5 * cm,
        bottomMargin=2.5 * cm,
        title=f"Material {record.material_id}",
    )

    story = [
        Paragraph(escape(REPORT_TITLE), styles['ReportTitle']),
        Paragraph(escape(REPORT_ISSUER), styles['ReportIssuer']),
    ]
    for title, fields in REPORT_SECTIONS:
        story.append(Paragraph(escape(title), styles['SectionHeader']))
        rows = [
            [Paragraph(escape(label), styles['FieldValue']),
             Paragraph(escape(_value(record, attr)), styles['FieldValue'])]
            for label, attr in fields
        ]
        table = Table(rows, colWidths=[5.5 * cm, 11.5 * cm])
        table.setStyle(TableStyle([
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('BACKGROUND', (0, 0), (0, -1), colors.Color(0.94, 0.94, 0.94)),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        story.append(table)
        story.append(Spacer(1, 6))

    doc.build(story, onFirstPage=_draw_frame, onLaterPages=_draw_frame)
    logger.info(f"Material report generated for {record.material_id}")
    return buffer.getvalue()


def qr_label_pdf(identifier: str, label_png: bytes) -> bytes:
    """Single A4 page with the PNG label centred on it"""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=f"QR {identifier}")
    frame_width = A4[0] - doc.leftMargin - doc.rightMargin

    image = Image(io.BytesIO(label_png))
    # Never scale a label up, only down to the page width
    ratio = min(frame_width / image.imageWidth, 1)
    image.drawWidth = image.imageWidth * ratio
    image.drawHeight = image.imageHeight * ratio
    image.hAlign = 'CENTER'

    doc.build([Spacer(1, 4 * cm), image])
    return buffer.getvalue()

"""
PDF exporter.

Renders the same sections as the CSV exporter into a printable document
with reportlab's platypus layout engine.
"""

from __future__ import annotations

import io
from datetime import datetime
from pathlib import Path
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from kemr.exporters.sections import (
    ALL_PATIENTS_SECTIONS,
    PATIENT_SECTIONS,
    all_patients_rows,
    resolve_options,
    section_rows,
)
from kemr.models import Patient


HEADER_COLOR = colors.HexColor("#1E3A8A")
GRID_COLOR = colors.HexColor("#D1D5DB")
STRIPE_COLOR = colors.HexColor("#F3F4F6")


def _styles():
    styles = getSampleStyleSheet()
    cell = ParagraphStyle("Cell", parent=styles["Normal"], fontSize=8, leading=10)
    head = ParagraphStyle("HeadCell", parent=cell, textColor=colors.white, fontName="Helvetica-Bold")
    return styles, cell, head


def _table(rows: list[dict], width: float, cell_style, head_style) -> Table:
    headers = list(rows[0].keys())
    data = [[Paragraph(escape(str(h)), head_style) for h in headers]]
    for row in rows:
        data.append([
            Paragraph(escape("" if row.get(h) is None else str(row.get(h))).replace("\n", "<br/>"), cell_style)
            for h in headers
        ])
    table = Table(data, colWidths=[width / len(headers)] * len(headers), repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
        ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, STRIPE_COLOR]),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return table


def _render(title: str, blocks: list[tuple[str, list[dict]]], pagesize) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=pagesize,
        topMargin=1.5 * cm,
        bottomMargin=1.5 * cm,
        leftMargin=1.5 * cm,
        rightMargin=1.5 * cm,
        title=title,
    )
    styles, cell_style, head_style = _styles()
    story = [
        Paragraph(escape(title), styles["Title"]),
        Paragraph(f"Generated {datetime.now().strftime('%Y-%m-%d %H:%M')}", styles["Normal"]),
        Spacer(1, 0.5 * cm),
    ]
    for heading, rows in blocks:
        story.append(Paragraph(escape(heading), styles["Heading2"]))
        if rows:
            story.append(_table(rows, doc.width, cell_style, head_style))
        else:
            story.append(Paragraph("No records.", styles["Italic"]))
        story.append(Spacer(1, 0.4 * cm))
    doc.build(story)
    return buf.getvalue()


def export_patient_pdf(patient: Patient, options=None, output_path: Path | None = None) -> bytes:
    """Export one patient's selected sections as PDF bytes."""
    sections = resolve_options(options, single_patient=True)
    blocks = [(PATIENT_SECTIONS[s], section_rows(patient, s)) for s in sections]
    pdf = _render(f"Patient Record: {patient.name} ({patient.id})", blocks, A4)
    _write(pdf, output_path)
    return pdf


def export_all_pdf(patients: list[Patient], options=None, output_path: Path | None = None) -> bytes:
    """Export the patient list as a single landscape table."""
    sections = resolve_options(options, single_patient=False)
    label = ", ".join(ALL_PATIENTS_SECTIONS[s] for s in sections)
    blocks = [(label, all_patients_rows(patients, sections))]
    pdf = _render("All Patients", blocks, landscape(A4))
    _write(pdf, output_path)
    return pdf


def _write(pdf: bytes, output_path: Path | None) -> None:
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(pdf)

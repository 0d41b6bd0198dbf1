"""
PDF report generation
Printable versions of the borrowing and inventory reports
"""
from io import BytesIO
from datetime import datetime
from typing import List, Optional
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import inch
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER


def generate_report_pdf(
    title: str,
    table: List[List[str]],
    subtitle: Optional[str] = None,
    summary: Optional[dict] = None,
) -> BytesIO:
    """
    Render a report table as a PDF

    Args:
        title: Heading at the top of the first page
        table: Header row followed by data rows (text cells)
        subtitle: Optional line under the title (e.g. the report period)
        summary: Optional label -> value pairs shown above the table

    Returns:
        BytesIO buffer containing PDF data
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), topMargin=0.5*inch, bottomMargin=0.5*inch)

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'ReportTitle',
        parent=styles['Heading1'],
        fontSize=20,
        textColor=colors.HexColor('#1a56db'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    cell_style = ParagraphStyle(
        'ReportCell',
        parent=styles['Normal'],
        fontSize=8,
        leading=10,
        textColor=colors.HexColor('#374151')
    )

    elements.append(Paragraph(escape(title), title_style))
    if subtitle:
        elements.append(Paragraph(escape(subtitle), ParagraphStyle('ReportSubtitle', parent=cell_style,
                                                           fontSize=10, alignment=TA_CENTER)))
    elements.append(Spacer(1, 0.25*inch))

    if summary:
        summary_table = Table([[f"{label}: {value}" for label, value in summary.items()]])
        summary_table.setStyle(TableStyle([
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        elements.append(summary_table)
        elements.append(Spacer(1, 0.2*inch))

    # Wrap cells in Paragraphs so long text breaks inside its column
    header, *rows = table
    data = [[Paragraph(f"<b>{escape(str(cell))}</b>", cell_style) for cell in header]]
    data += [[Paragraph(escape(str(cell)), cell_style) for cell in row] for row in rows]
    if not rows:
        data.append([Paragraph("No data for this report", cell_style)] + [""] * (len(header) - 1))

    report_table = Table(data, colWidths=[doc.width / len(header)] * len(header), repeatRows=1)
    report_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f3f4f6')),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#fafafa')]),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ]))
    elements.append(report_table)

    footer_style = ParagraphStyle(
        'Footer',
        parent=styles['Normal'],
        fontSize=8,
        textColor=colors.grey,
        alignment=TA_CENTER
    )
    elements.append(Spacer(1, 0.3*inch))
    elements.append(Paragraph(f"Report generated on {datetime.now().strftime('%d %b %Y at %I:%M %p')}", footer_style))

    doc.build(elements)

    buffer.seek(0)
    return buffer

"""
PDF Generation Service for time reports
"""
import io
from typing import Any, Dict, List
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas
from reportlab.lib.enums import TA_RIGHT


def _fmt_currency(value: float) -> str:
    try:
        return f"{float(value or 0):,.2f}"
    except (TypeError, ValueError):
        return "0.00"


class PDFService:
    """Renders report payloads from report_service as PDF documents."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom paragraph styles"""
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Normal'],
            fontSize=20,
            textColor=colors.black,
            spaceAfter=8,
            fontName='Helvetica-Bold'
        ))
        self.styles.add(ParagraphStyle(
            name='ReportMeta',
            parent=self.styles['Normal'],
            fontSize=10,
            textColor=colors.black,
            spaceAfter=4,
        ))
        self.styles.add(ParagraphStyle(
            name='TotalsLine',
            parent=self.styles['Normal'],
            fontSize=11,
            fontName='Helvetica-Bold',
            alignment=TA_RIGHT,
        ))

    def generate_team_report_pdf(self, report: Dict[str, Any], include_financials: bool = False) -> io.BytesIO:
        """Generate PDF for the team stats report"""
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=0.5*inch, bottomMargin=0.5*inch)

        story = []
        story.append(Paragraph("Time Report", self.styles['ReportTitle']))
        story.append(Paragraph(
            f"Period: {report.get('start_date', '')} to {report.get('end_date', '')}",
            self.styles['ReportMeta'],
        ))
        story.append(Spacer(1, 0.2*inch))
        story.extend(self._build_users_table(report.get('users', []), include_financials))
        story.append(Spacer(1, 0.2*inch))

        totals = f"Total hours: {report.get('total_hours', '0.00')}"
        if include_financials:
            totals += f"    Total cost: {_fmt_currency(report.get('total_cost'))}"
        story.append(Paragraph(totals, self.styles['TotalsLine']))

        doc.build(story, onFirstPage=self._add_page_number, onLaterPages=self._add_page_number)
        buffer.seek(0)
        return buffer

    def _build_users_table(self, users: List[Dict[str, Any]], include_financials: bool) -> List:
        headers = ['#', 'User', 'Entries', 'Hours']
        if include_financials:
            headers.append('Cost')
        table_data = [headers]
        for i, row in enumerate(users, 1):
            line = [str(i), row.get('user_name', ''), str(row.get('entry_count', 0)), row.get('total_hours', '0.00')]
            if include_financials:
                line.append(_fmt_currency(row.get('total_cost')))
            table_data.append(line)

        col_widths = [0.5*inch, 3*inch, 1*inch, 1*inch]
        if include_financials:
            col_widths.append(1.2*inch)
        users_table = Table(table_data, colWidths=col_widths, repeatRows=1)
        users_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 10),
            ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 9),
            ('ALIGN', (2, 1), (-1, -1), 'RIGHT'),
            ('ALIGN', (1, 1), (1, -1), 'LEFT'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        return [users_table]

    def _add_page_number(self, canv: canvas.Canvas, doc):
        canv.saveState()
        canv.setFont('Helvetica', 8)
        canv.drawRightString(A4[0] - 0.5*inch, 0.3*inch, f"Page {doc.page}")
        canv.restoreState()


pdf_service = PDFService()

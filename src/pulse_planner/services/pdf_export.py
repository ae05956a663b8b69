"""
Business Plan PDF Export

Builds the one-page "<Name>'s <Year> Business Plan" document from a plan
and its calculated targets.
"""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, HRFlowable
)
from reportlab.lib.enums import TA_CENTER

from ..core.calculator import calculate_goals
from ..core.models import PlanResult, SegmentActivity
from ..core.summary import income_summary
from ..exceptions import ExportError

logger = logging.getLogger(__name__)

# Brand colors
BRAND_PRIMARY = colors.HexColor("#1E293B")  # Slate
BRAND_ACCENT = colors.HexColor("#7C3AED")   # Violet
BRAND_LIGHT = colors.HexColor("#F8FAFC")    # Light gray
BRAND_FALLOFF = colors.HexColor("#EA580C")  # Orange


def default_pdf_filename(year: Any) -> str:
    return f"Business_Plan_{year}.pdf"


def format_currency(value: Any) -> str:
    """Format number as whole-dollar currency."""
    if not value:
        return "$0"
    return f"${value:,.0f}"


def create_styles():
    """Create custom paragraph styles."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name='PlanTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.black,
        spaceAfter=6,
        fontName='Helvetica-Bold'
    ))

    styles.add(ParagraphStyle(
        name='SectionHeader',
        parent=styles['Heading2'],
        fontSize=16,
        textColor=BRAND_PRIMARY,
        spaceBefore=14,
        spaceAfter=8,
        fontName='Helvetica-Bold',
    ))

    styles.add(ParagraphStyle(
        name='PlanSmallText',
        parent=styles['Normal'],
        fontSize=9,
        textColor=colors.gray
    ))

    return styles


def create_info_table(data, col_widths=None, highlight_last=False):
    """Create a styled label/value table."""
    if col_widths is None:
        col_widths = [2.5*inch, 3*inch]

    table = Table(data, colWidths=col_widths)
    style_commands = [
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica'),
        ('FONTNAME', (1, 0), (1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 11),
        ('TEXTCOLOR', (0, 0), (0, -1), colors.gray),
        ('TEXTCOLOR', (1, 0), (1, -1), colors.black),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
        ('TOPPADDING', (0, 0), (-1, -1), 5),
        ('LINEBELOW', (0, 0), (-1, -2), 0.5, colors.HexColor("#e0e0e0")),
    ]
    if highlight_last:
        style_commands.append(('TEXTCOLOR', (0, -1), (-1, -1), BRAND_ACCENT))
        style_commands.append(('FONTNAME', (0, -1), (0, -1), 'Helvetica-Bold'))

    table.setStyle(TableStyle(style_commands))
    return table


def create_funnel_table(buyer: SegmentActivity, listing: SegmentActivity):
    """Buyer vs listing funnel, stage by stage, with fall-off rows."""
    header = ['Stage', 'Buyer', 'Listing']
    rows: List[List[str]] = [
        ['Conversations', f"{buyer.conversations:,}", f"{listing.conversations:,}"],
        ['Appointments', f"{buyer.appointments:,}", f"{listing.appointments:,}"],
        ['Agreements', f"{buyer.agreements:,}", f"{listing.agreements:,}"],
        ['Contracts', f"{buyer.contracts:,}", f"{listing.contracts:,}"],
        ['Closed', f"{buyer.closed:,}", f"{listing.closed:,}"],
        ['Fall-off: Agreement to Contract',
         f"-{buyer.falloff.agreement_to_contract}", f"-{listing.falloff.agreement_to_contract}"],
        ['Fall-off: Contract to Close',
         f"-{buyer.falloff.contract_to_close}", f"-{listing.falloff.contract_to_close}"],
    ]
    data = [header] + rows

    table = Table(data, colWidths=[2.5*inch, 1.25*inch, 1.25*inch], repeatRows=1)

    style_commands = [
        # Header styling
        ('BACKGROUND', (0, 0), (-1, 0), BRAND_PRIMARY),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 10),

        # Body styling
        ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 1), (-1, -1), 10),
        ('ALIGN', (1, 0), (-1, -1), 'CENTER'),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
        ('TOPPADDING', (0, 0), (-1, -1), 5),

        # Closed row
        ('FONTNAME', (0, 5), (-1, 5), 'Helvetica-Bold'),
        ('TEXTCOLOR', (1, 5), (-1, 5), BRAND_ACCENT),

        # Fall-off rows
        ('TEXTCOLOR', (0, 6), (-1, 7), BRAND_FALLOFF),

        ('LINEBELOW', (0, 0), (-1, 0), 1, BRAND_PRIMARY),
        ('LINEBELOW', (0, 1), (-1, -1), 0.5, colors.HexColor("#e0e0e0")),
    ]

    for i in range(1, len(data)):
        if i % 2 == 0:
            style_commands.append(('BACKGROUND', (0, i), (-1, i), BRAND_LIGHT))

    table.setStyle(TableStyle(style_commands))
    return table


def build_story(plan_data: Dict[str, Any], first_name: str, result: PlanResult, styles) -> list:
    summary = income_summary(plan_data)
    year = plan_data.get('planYear')
    story = []

    story.append(Paragraph(f"{escape(first_name)}'s {year} Business Plan", styles['PlanTitle']))
    story.append(HRFlowable(width="100%", thickness=1, color=BRAND_ACCENT, spaceAfter=12))

    # Income Summary
    story.append(Paragraph("Income Summary", styles['SectionHeader']))
    story.append(create_info_table([
        ['Net Income Goal', format_currency(summary['netIncomeGoal'])],
        ['Total Expenses', format_currency(summary['totalExpenses'])],
        ['Tax Set Aside', format_currency(summary['taxReserve'])],
        ['Total Income Needed', format_currency(summary['totalIncomeNeeded'])],
    ], highlight_last=True))

    # Production Goals
    story.append(Paragraph("Production Goals", styles['SectionHeader']))
    story.append(create_info_table([
        ['GCI Needed', format_currency(result.gci_required)],
        ['Total Sales Volume', format_currency(result.total_volume)],
        ['Buyer Deals', str(result.buyer_deals)],
        ['Listing Deals', str(result.listing_deals)],
    ]))

    # Activity Goals
    story.append(Paragraph("Activity Goals (Annual)", styles['SectionHeader']))
    story.append(create_info_table([
        ['Conversations', f"{result.total_conversations:,}"],
        ['Appointments', f"{result.total_appointments:,}"],
        ['Agreements', f"{result.total_agreements:,}"],
        ['Contracts', f"{result.total_contracts:,}"],
    ]))

    story.append(Paragraph("Activity Funnel", styles['SectionHeader']))
    story.append(create_funnel_table(result.buyer_activity, result.listing_activity))

    # Footer
    story.append(Spacer(1, 20))
    footer_style = ParagraphStyle(
        'Footer',
        parent=styles['PlanSmallText'],
        alignment=TA_CENTER
    )
    story.append(Paragraph(
        f"Generated on {datetime.now().strftime('%B %d, %Y at %I:%M %p')}  •  PULSE Intelligence",
        footer_style
    ))
    return story


def build_plan_pdf(
    plan_data: Dict[str, Any],
    first_name: str,
    result: Optional[PlanResult] = None,
    output_path: Optional[Union[str, Path]] = None
) -> bytes:
    """
    Generate the business plan PDF.

    Args:
        plan_data: The wizard plan (camelCase dict)
        first_name: Agent's first name for the title
        result: Precomputed targets (calculated from plan_data if omitted)
        output_path: Also write the PDF here when given

    Returns:
        PDF as bytes

    Raises:
        ExportError: the document could not be built or written
    """
    if result is None:
        result = calculate_goals(plan_data)

    logger.info(f"Generating business plan PDF for {first_name} ({plan_data.get('planYear')})")

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=f"{plan_data.get('planYear')} Business Plan",
    )

    try:
        doc.build(build_story(plan_data, first_name, result, create_styles()))
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Failed to generate PDF: {e}")
        raise ExportError(f"Failed to generate PDF: {e}") from e

    pdf_bytes = buffer.getvalue()

    if output_path is not None:
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(pdf_bytes)
        except OSError as e:
            logger.error(f"Failed to write PDF to {output_path}: {e}")
            raise ExportError(f"Failed to write PDF: {e}") from e
        logger.info(f"PDF generated: {output_path}")

    return pdf_bytes

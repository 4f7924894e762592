"""
Export Service - renders proposals to downloadable documents.
Uses reportlab for PDF and python-docx for DOCX files.
"""

import html
import io
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote
from xml.sax.saxutils import escape

from docx import Document
from docx.shared import Pt
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer

from config.plans import Plan
from database_models import Proposal
from services.proposal_service import parse_score
from utils.errors import ExportNotAllowedError
from utils.shared_utils import slugify

logger = logging.getLogger(__name__)

MEDIA_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "html": "text/html; charset=utf-8",
}

SECTION_HEADINGS = {
    "Project Overview",
    "What We'll Deliver",
    "Timeline & Investment",
    "Why Choose Us?",
    "Next Steps",
}


@dataclass
class ExportedDocument:
    content: bytes
    media_type: str
    filename: str


def _title(proposal: Proposal) -> str:
    return f"Proposal for {proposal.client_name}"


def _subtitle(proposal: Proposal) -> str:
    subtitle = f"{proposal.project_type} | {proposal.industry}"
    score = parse_score(proposal.emotional_score)
    if score:
        subtitle += f" | Confidence score {score.overall}%"
    return subtitle


def render_pdf(proposal: Proposal) -> bytes:
    """Generate a PDF document."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=20*mm,
        leftMargin=20*mm,
        topMargin=25*mm,
        bottomMargin=20*mm,
        title=_title(proposal),
    )

    story = []
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ProposalTitle',
        parent=styles['Heading1'],
        fontSize=20,
        alignment=TA_CENTER,
        spaceAfter=6,
    )
    subtitle_style = ParagraphStyle(
        'ProposalSubtitle',
        parent=styles['Normal'],
        alignment=TA_CENTER,
        textColor=colors.HexColor('#666666'),
        spaceAfter=12,
    )
    section_style = ParagraphStyle(
        'Section',
        parent=styles['Heading2'],
        fontSize=14,
        spaceBefore=12,
        spaceAfter=6,
    )
    normal_style = styles['Normal']

    story.append(Paragraph(escape(_title(proposal)), title_style))
    story.append(Paragraph(escape(_subtitle(proposal)), subtitle_style))

    for line in proposal.content.splitlines():
        stripped = line.strip()
        if not stripped:
            story.append(Spacer(1, 6))
        elif stripped in SECTION_HEADINGS:
            story.append(Paragraph(escape(stripped), section_style))
        else:
            # Preserve the template's indentation of sub-bullets
            indent = "&nbsp;" * (len(line) - len(line.lstrip()))
            story.append(Paragraph(indent + escape(stripped), normal_style))

    doc.build(story)
    return buffer.getvalue()


def render_docx(proposal: Proposal) -> bytes:
    """Generate a Word document."""
    doc = Document()
    doc.styles['Normal'].font.name = 'Calibri'
    doc.styles['Normal'].font.size = Pt(11)

    doc.add_heading(_title(proposal), level=0)
    doc.add_paragraph(_subtitle(proposal))

    for line in proposal.content.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped in SECTION_HEADINGS:
            doc.add_heading(stripped, level=1)
        else:
            doc.add_paragraph(line.rstrip())

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def render_html(proposal: Proposal) -> bytes:
    """Standalone HTML page; all proposal text is escaped."""
    body = []
    for line in proposal.content.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped in SECTION_HEADINGS:
            body.append(f"<h2>{html.escape(stripped)}</h2>")
        else:
            body.append(f"<p style=\"white-space: pre-wrap\">{html.escape(line.rstrip())}</p>")

    page = (
        "<!DOCTYPE html>\n"
        "<html lang=\"en\">\n<head>\n<meta charset=\"utf-8\">\n"
        f"<title>{html.escape(_title(proposal))}</title>\n"
        "</head>\n<body>\n"
        f"<h1>{html.escape(_title(proposal))}</h1>\n"
        f"<p><em>{html.escape(_subtitle(proposal))}</em></p>\n"
        + "\n".join(body)
        + "\n</body>\n</html>\n"
    )
    return page.encode("utf-8")


RENDERERS = {
    "pdf": render_pdf,
    "docx": render_docx,
    "html": render_html,
}


def export_proposal(proposal: Proposal, fmt: str, plan: Plan) -> ExportedDocument:
    """
    Render a proposal in the requested format.

    Raises:
        ValueError: unknown format
        ExportNotAllowedError: the format is not included in the user's plan
    """
    fmt = fmt.lower()
    if fmt not in RENDERERS:
        raise ValueError(f"Unsupported export format: {fmt}")
    if fmt not in plan.export_formats:
        raise ExportNotAllowedError(f"{fmt.upper()} export requires a paid plan")

    content = RENDERERS[fmt](proposal)
    filename = f"proposal-{slugify(proposal.client_name)}.{fmt}"
    logger.info(f"Exported proposal {proposal.id} as {fmt} ({len(content)} bytes)")
    return ExportedDocument(content=content, media_type=MEDIA_TYPES[fmt], filename=filename)


def build_mailto(proposal: Proposal, recipient: Optional[str] = None) -> str:
    """mailto: link that opens the user's mail client with the proposal as the body."""
    subject = quote(f"{_title(proposal)}: {proposal.project_type}")
    body = quote(proposal.content)
    return f"mailto:{quote(recipient or '', safe='@')}?subject={subject}&body={body}"

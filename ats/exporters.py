"""
Cover letter export to PDF, DOCX and plain text.

Each exporter returns ``(bytes, filename, mimetype)`` ready for
``flask.send_file``. Layout is intentionally plain: one paragraph per block
of text.
"""

import re
from io import BytesIO
from typing import Tuple
from xml.sax.saxutils import escape

from docx import Document
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

PDF_MIMETYPE = "application/pdf"
DOCX_MIMETYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIMETYPE = "text/plain"

EXTENSIONS = {"pdf": "pdf", "docx": "docx", "text": "txt"}


def safe_name(value, default: str) -> str:
    """Lower-case and collapse anything outside [a-z0-9] into underscores."""
    text = str(value) if value else default
    return re.sub(r"[^a-z0-9]+", "_", text, flags=re.IGNORECASE).lower()


def export_filename(job_title, company, kind: str) -> str:
    """``<job_title>_<company>.<ext>`` with both parts sanitized."""
    return f"{safe_name(job_title, 'cover')}_{safe_name(company, 'letter')}.{EXTENSIONS[kind]}"


def _paragraphs(content: str):
    blocks = re.split(r"\n\s*\n", content or "")
    return [block.strip() for block in blocks if block.strip()]


def render_pdf(content: str) -> bytes:
    buf = BytesIO()
    pdf = SimpleDocTemplate(
        buf,
        pagesize=letter,
        topMargin=inch,
        bottomMargin=inch,
        leftMargin=inch,
        rightMargin=inch,
    )
    body = getSampleStyleSheet()["BodyText"]

    story = []
    for block in _paragraphs(content):
        # Paragraph takes mini-markup, so escape and keep single line breaks
        story.append(Paragraph(escape(block).replace("\n", "<br/>"), body))
        story.append(Spacer(1, 0.15 * inch))
    if not story:
        story.append(Spacer(1, 0.15 * inch))

    pdf.build(story)
    return buf.getvalue()


def render_docx(content: str) -> bytes:
    doc = Document()
    blocks = _paragraphs(content)
    if not blocks:
        doc.add_paragraph("")
    for block in blocks:
        doc.add_paragraph(block)

    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()


def render_text(content: str) -> bytes:
    return (content or "").encode("utf-8")


RENDERERS = {
    "pdf": (render_pdf, PDF_MIMETYPE),
    "docx": (render_docx, DOCX_MIMETYPE),
    "text": (render_text, TEXT_MIMETYPE),
}


def export_cover_letter(kind: str, content, job_title=None, company=None) -> Tuple[bytes, str, str]:
    """
    Render a cover letter.

    Args:
        kind: "pdf", "docx" or "text"
        content: Letter body; non-string values are converted with str()
        job_title: Used in the download filename (default "cover")
        company: Used in the download filename (default "letter")

    Returns:
        (data, filename, mimetype)
    """
    if kind not in RENDERERS:
        raise ValueError(f"Unknown export format: {kind}")
    render, mimetype = RENDERERS[kind]
    text = "" if content is None else str(content)
    return render(text), export_filename(job_title, company, kind), mimetype

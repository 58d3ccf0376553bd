# informes/pdf.py
"""
S-205b-S (auxiliary pioneer application) rendered with reportlab.

The page is drawn directly on a canvas: landscape US letter, top section with
the request, date / applicant signature / printed name in the middle, note and
committee questions bottom left, committee signatures bottom right.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from typing import Optional

from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph

from .models import PioneerApplication

logger = logging.getLogger(__name__)

PAGE_SIZE = landscape(letter)
MARGIN = 0.5 * inch
FORM_CODE = "S-205b-S 4/15"

TITLE = "SOLICITUD PARA EL SERVICIO DE PRECURSOR AUXILIAR"
INTRO = (
    "Debido a mi amor a Jehová y mi deseo de ayudar al prójimo a aprender acerca de él y sus "
    "amorosos propósitos, quisiera aumentar mi participación en el servicio del campo siendo "
    "precursor auxiliar durante el periodo indicado abajo:"
)
CONTINUOUS = "Marque la casilla si desea ser precursor auxiliar de continuo hasta nuevo aviso."
REPUTATION = (
    "Gozo de una buena reputación moral y tengo buenos hábitos. He hecho planes para satisfacer "
    "el requisito de horas. (Vea <i>Nuestro Ministerio del Reino</i> de junio de 2013, página 2)."
)
NOTE = (
    "<b>NOTA:</b> Después de llenar esta solicitud, entréguela al coordinador del cuerpo de ancianos. "
    "Si es posible, hágalo por lo menos una semana antes de la fecha en que desea comenzar el servicio "
    "de precursor auxiliar. No debe enviarse esta solicitud a la sucursal, sino más bien guardarse en "
    "los archivos de la congregación."
)
COMMITTEE_TITLE = "<b>Para el Comité de Servicio de la Congregación:</b>"
COMMITTEE_QUESTIONS = [
    "¿Es el solicitante un buen ejemplo del vivir cristiano?",
    "Quienes hayan sido censurados o readmitidos durante el pasado año o todavía estén bajo "
    "restricciones no satisfacen los requisitos.",
    "¿Han consultado con su superintendente de grupo?",
]
APPROVED_BY = "Aprobado por los miembros del comité de servicio:"
INITIALS = "(Basta con las iniciales)"

DATA_URL_RE = re.compile(r"^data:image/(?P<kind>png|jpe?g);base64,(?P<data>.+)$", re.DOTALL)

BODY = ParagraphStyle("body", fontName="Times-Roman", fontSize=11, leading=14)
SMALL = ParagraphStyle("small", parent=BODY, fontSize=9, leading=11)


def decode_signature(data_url: Optional[str]) -> Optional[ImageReader]:
    """PNG/JPEG data URL -> ImageReader, or None when empty or unreadable."""
    if not data_url:
        return None
    m = DATA_URL_RE.match(data_url.strip())
    if not m:
        logger.warning("Ignoring signature that is not an image data URL.")
        return None
    try:
        raw = base64.b64decode(m.group("data"), validate=False)
        return ImageReader(io.BytesIO(raw))
    except (binascii.Error, OSError, ValueError):
        logger.warning("Ignoring undecodable signature image.", exc_info=True)
        return None


def _paragraph(c: canvas.Canvas, text: str, style: ParagraphStyle, x: float, top: float, width: float) -> float:
    """Draw a wrapped paragraph with its top at `top`; returns the new top."""
    p = Paragraph(text, style)
    _, h = p.wrap(width, PAGE_SIZE[1])
    p.drawOn(c, x, top - h)
    return top - h


def _dotted_line(c: canvas.Canvas, x1: float, x2: float, y: float) -> None:
    c.saveState()
    c.setDash(1, 2)
    c.setLineWidth(0.6)
    c.line(x1, y, x2, y)
    c.restoreState()


def _image_in_box(c: canvas.Canvas, image: Optional[ImageReader], x: float, y: float, w: float, h: float) -> None:
    if image is None:
        return
    iw, ih = image.getSize()
    if not iw or not ih:
        return
    scale = min(w / iw, h / ih)
    dw, dh = iw * scale, ih * scale
    c.drawImage(image, x + (w - dw) / 2, y + (h - dh) / 2, dw, dh, mask="auto")


def _centered_caption(c: canvas.Canvas, text: str, x1: float, x2: float, y: float) -> None:
    c.setFont("Times-Roman", 9)
    c.drawCentredString((x1 + x2) / 2, y, text)


def render_application_pdf(application: PioneerApplication) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=PAGE_SIZE)
    c.setTitle(f"Solicitud_PA_{application.nombre}")

    page_w, page_h = PAGE_SIZE
    left, right = MARGIN, page_w - MARGIN
    width = right - left
    half = (width - 0.75 * inch) / 2

    # Title and request
    top = page_h - MARGIN
    c.setFont("Times-Bold", 12)
    c.drawCentredString(page_w / 2, top - 12, TITLE)
    top -= 32
    top = _paragraph(c, INTRO, BODY, left, top, width) - 14

    c.setFont("Times-Roman", 11)
    label = "El (los) mes(es) de"
    c.drawString(left, top, label)
    line_start = left + c.stringWidth(label, "Times-Roman", 11) + 6
    _dotted_line(c, line_start, right, top - 2)
    c.setFont("Times-Bold", 11)
    c.drawCentredString((line_start + right) / 2, top + 1, application.mes or "")
    top -= 26

    box = 0.16 * inch
    c.setLineWidth(0.8)
    c.rect(left, top - 2, box, box)
    if application.de_continuo:
        c.setFont("Times-Bold", 9)
        c.drawCentredString(left + box / 2, top + 1, "X")
    c.setFont("Times-Roman", 11)
    c.drawString(left + box + 6, top, CONTINUOUS)
    top -= 16
    top = _paragraph(c, REPUTATION, BODY, left, top, 7.3 * inch) - 18

    # Date, applicant signature, printed name
    sig_left = left + half + 0.75 * inch
    sig_h = 0.8 * inch
    line_y = top - sig_h

    c.setFont("Times-Roman", 9)
    c.drawString(left, line_y + 2, "Fecha:")
    _dotted_line(c, left + 32, left + half, line_y)
    c.setFont("Times-Roman", 11)
    c.drawCentredString((left + 32 + left + half) / 2, line_y + 3, str(application.fecha or ""))

    _image_in_box(c, decode_signature(application.firma_solicitante), sig_left, line_y + 2, right - sig_left, sig_h - 6)
    _dotted_line(c, sig_left, right, line_y)
    _centered_caption(c, "(Firma del solicitante)", sig_left, right, line_y - 11)

    name_y = line_y - 0.55 * inch
    c.setFont("Times-Bold", 11)
    c.drawCentredString((sig_left + right) / 2, name_y + 3, application.nombre)
    _dotted_line(c, sig_left, right, name_y)
    _centered_caption(c, "(Nombre en letra de molde)", sig_left, right, name_y - 11)

    # Note and committee questions (left), committee signatures (right)
    bottom_top = name_y - 0.45 * inch
    y = _paragraph(c, NOTE, SMALL, left, bottom_top, half) - 8
    y = _paragraph(c, COMMITTEE_TITLE, SMALL, left, y, half) - 2
    for n, question in enumerate(COMMITTEE_QUESTIONS, start=1):
        y = _paragraph(c, f"{n}. {question}", SMALL, left + 8, y, half - 8) - 2

    y = _paragraph(c, APPROVED_BY, BODY, sig_left, bottom_top, right - sig_left)
    y = _paragraph(c, INITIALS, SMALL, sig_left, y, right - sig_left)
    slot_h = 0.5 * inch
    for signature in application.signatures:
        y -= slot_h + 4
        _image_in_box(c, decode_signature(signature), sig_left, y + 2, right - sig_left, slot_h - 6)
        _dotted_line(c, sig_left, right, y)

    c.setFont("Times-Roman", 9)
    c.drawString(left, MARGIN, FORM_CODE)

    c.showPage()
    c.save()
    return buf.getvalue()


def pdf_filename(application: PioneerApplication) -> str:
    safe = re.sub(r"[^\w\-]+", "_", application.nombre or "").strip("_") or str(application.pk)
    return f"Solicitud_PA_{safe}.pdf"

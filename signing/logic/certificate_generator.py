from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from io import BytesIO
from typing import List, Optional, Tuple

from PIL import Image
from pypdf import PdfReader, PdfWriter
from reportlab.lib.colors import Color
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from core.helpers.date_time_helper import format_local
from signing.logic.attachment_policy import is_pdf_attachment
from signing.logic.kind_profiles import profile_for
from signing.logic.naming_strategy import (
    KindPrefixStrategy,
    NamingContext,
    NamingStrategy,
    SignedSuffixStrategy,
    shorten_token,
)
from signing.models.render_metadata import RenderMetadata
from signing.models.signable import SignableEntity, WorkerAssignment
from signing.models.signing_enums import RenderPath
from signing.models.stamp_layout import StampLayout, SynthLayout

logger = logging.getLogger(__name__)

SIGNATURE_PLACEHOLDER = "(signature image could not be embedded)"

_DARK = (0.15, 0.15, 0.15)
_TEXT = (0.2, 0.2, 0.2)
_MUTED = (0.35, 0.35, 0.35)
_GREEN = (34 / 255.0, 197 / 255.0, 94 / 255.0)
_RED = (239 / 255.0, 68 / 255.0, 68 / 255.0)


@dataclass(frozen=True)
class RenderedCertificate:
    content: bytes
    file_name: str
    path: RenderPath


def fit_within(width: float, height: float, max_width: float, max_height: float) -> Tuple[float, float]:
    """Uniform scale of (width, height) so it fits the bounds without overflowing either."""
    if width <= 0 or height <= 0:
        raise ValueError("Image has no area.")
    scale = min(max_width / width, max_height / height)
    return width * scale, height * scale


def load_signature_image(png_signature: bytes) -> Image.Image:
    """Decode the captured signature (fully, so corrupt data fails here)."""
    img = Image.open(BytesIO(png_signature))
    img.load()
    return img.convert("RGBA")


def _fit_text(text: str, font: str, size: float, max_width: float) -> str:
    if stringWidth(text, font, size) <= max_width:
        return text
    ellipsis = "…"
    while text and stringWidth(text + ellipsis, font, size) > max_width:
        text = text[:-1]
    return text + ellipsis


class _SynthPage:
    """Cursor-driven writer for synthesized certificates (A4, millimetres from the top)."""

    def __init__(self, c: canvas.Canvas, layout: SynthLayout) -> None:
        self.c = c
        self.L = layout
        self.page_h_mm = A4[1] / mm
        self.y = layout.top

    def _pt_y(self, y_mm: float) -> float:
        return A4[1] - y_mm * mm

    def ensure_space(self, needed_mm: float) -> None:
        if self.y + needed_mm > self.page_h_mm - self.L.top:
            self.c.showPage()
            self.y = self.L.top

    def title(self, text: str) -> None:
        self.c.setFont("Helvetica-Bold", 16)
        self.c.drawString(self.L.margin_x * mm, self._pt_y(self.y), text)
        self.y += 10

    def row(self, label: str, value: str) -> None:
        """Bold label, value word-wrapped to the page width."""
        text_x = self.L.margin_x + self.L.label_width
        wrapped: List[str] = simpleSplit(value or "-", "Helvetica", 11, (self.L.wrap_limit - text_x) * mm) or ["-"]
        self.ensure_space(self.L.row_height + (len(wrapped) - 1) * self.L.line_height)
        self.c.setFont("Helvetica-Bold", 11)
        self.c.drawString(self.L.margin_x * mm, self._pt_y(self.y), f"{label}:")
        self.c.setFont("Helvetica", 11)
        for i, line in enumerate(wrapped):
            self.c.drawString(text_x * mm, self._pt_y(self.y + i * self.L.line_height), line)
        self.y += self.L.row_height + (len(wrapped) - 1) * self.L.line_height

    def divider(self) -> None:
        self.y += 2
        self.c.saveState()
        self.c.setStrokeGray(200 / 255.0)
        self.c.line(self.L.margin_x * mm, self._pt_y(self.y), self.L.right_edge * mm, self._pt_y(self.y))
        self.c.restoreState()
        self.y += 8

    def heading(self, text: str, size: int = 12, advance: float = 8) -> None:
        self.ensure_space(advance)
        self.c.setFont("Helvetica-Bold", size)
        self.c.drawString(self.L.margin_x * mm, self._pt_y(self.y), text)
        self.y += advance

    def checklist(self, items: List[Tuple[str, bool]]) -> None:
        width = (self.L.right_edge - self.L.margin_x) * mm
        for idx, (question, yes) in enumerate(items, start=1):
            lines = simpleSplit(f"{idx}. {question}", "Helvetica", 10, width) or [f"{idx}."]
            self.ensure_space(6 * len(lines) + 8)
            self.c.setFont("Helvetica", 10)
            for line in lines:
                self.c.drawString(self.L.margin_x * mm, self._pt_y(self.y), line)
                self.y += 6
            self.c.setFont("Helvetica-Bold", 10)
            self.c.setFillColorRGB(*(_GREEN if yes else _RED))
            self.c.drawString((self.L.margin_x + 5) * mm, self._pt_y(self.y), "YES" if yes else "NO")
            self.c.setFillColorRGB(0, 0, 0)
            self.y += 8

    def verdict(self, text: str, positive: bool) -> None:
        self.ensure_space(10)
        self.c.setFont("Helvetica-Bold", 14)
        self.c.setFillColorRGB(*(_GREEN if positive else _RED))
        self.c.drawString(self.L.margin_x * mm, self._pt_y(self.y), text)
        self.c.setFillColorRGB(0, 0, 0)
        self.y += 10

    def signature_box(self, png_signature: bytes) -> bool:
        """Bordered box with the signature; placeholder text if embedding fails."""
        L = self.L
        self.ensure_space(6 + L.signature_box_height + 2)
        self.y += 2
        self.heading("Worker signature", size=11, advance=6)
        box_top = self.y
        self.c.saveState()
        self.c.setStrokeGray(150 / 255.0)
        self.c.rect(L.margin_x * mm, self._pt_y(box_top + L.signature_box_height),
                    L.signature_box_width * mm, L.signature_box_height * mm, stroke=1, fill=0)
        self.c.restoreState()
        embedded = True
        try:
            img = load_signature_image(png_signature)
            max_w = (L.signature_box_width - 2 * L.signature_inset) * mm
            max_h = (L.signature_box_height - 2 * L.signature_inset) * mm
            w, h = fit_within(img.width, img.height, max_w, max_h)
            x = (L.margin_x + L.signature_inset) * mm
            y = self._pt_y(box_top + L.signature_box_height - L.signature_inset)
            self.c.drawImage(ImageReader(img), x, y, width=w, height=h, mask="auto")
        except Exception as ex:
            logger.warning("Signature image could not be embedded: %s", ex)
            self.c.setFont("Helvetica", 11)
            self.c.drawString((L.margin_x + 3) * mm, self._pt_y(box_top + 12), SIGNATURE_PLACEHOLDER)
            embedded = False
        self.y = box_top + L.signature_box_height
        return embedded


class CertificateGenerator:
    """
    Produces the PDF certificate of a signature event.

    Stamp path: the record's attachment is a PDF; a signature box is merged
    onto its last page. Synthesize path: a new A4 certificate. Any failure of
    the stamp path falls back to synthesizing.
    """

    def __init__(
        self,
        *,
        stamp_layout: Optional[StampLayout] = None,
        synth_layout: Optional[SynthLayout] = None,
        date_format: Optional[str] = None,
        stamp_date_format: Optional[str] = None,
        tz: Optional[tzinfo] = None,
        stamp_naming: Optional[NamingStrategy] = None,
        synth_naming: Optional[NamingStrategy] = None,
    ) -> None:
        if date_format is None or stamp_date_format is None:
            from core.config.config_service import get_config
            cfg = get_config().signing
            date_format = date_format or cfg.date_format
            stamp_date_format = stamp_date_format or cfg.stamp_date_format
        self._stamp = stamp_layout or StampLayout()
        self._synth = synth_layout or SynthLayout()
        self._date_format = date_format
        self._stamp_date_format = stamp_date_format
        self._tz = tz
        self._stamp_naming = stamp_naming or SignedSuffixStrategy()
        self._synth_naming = synth_naming or KindPrefixStrategy()

    # ------------------------------------------------------------------ #
    def render(self, entity: SignableEntity, assignment: WorkerAssignment,
               signature_image: bytes) -> RenderedCertificate:
        if assignment.signed_at is None:
            raise ValueError("Assignment has no signing time; nothing to certify.")

        meta = profile_for(entity.kind).render_metadata(entity, assignment)
        ctx = NamingContext(
            token=assignment.token,
            signed_at=assignment.signed_at,
            kind_prefix=meta.filename_prefix,
            signer_name=assignment.signer_name,
            signer_external_id=assignment.signer_external_id,
            original_file_name=entity.attachment.file_name if entity.attachment else None,
            tz=self._tz,
        )

        if is_pdf_attachment(entity.attachment):
            try:
                content = self.stamp(entity.attachment.content, assignment, signature_image)
                return RenderedCertificate(content, self._stamp_naming.propose_file_name(ctx), RenderPath.STAMP)
            except Exception as ex:
                logger.warning("Stamping attachment of %s failed, synthesizing certificate instead: %s",
                               entity.id, ex)

        content = self.synthesize(meta, assignment, signature_image)
        return RenderedCertificate(content, self._synth_naming.propose_file_name(ctx), RenderPath.SYNTHESIZE)

    # ------------------------------------------------------------------ #
    #  Stamp path                                                        #
    # ------------------------------------------------------------------ #
    def stamp(self, pdf_bytes: bytes, assignment: WorkerAssignment, png_signature: bytes) -> bytes:
        """Copy the PDF, merging the signature box onto the last page only."""
        reader = PdfReader(BytesIO(pdf_bytes))
        if len(reader.pages) == 0:
            raise ValueError("Attached PDF has no pages.")
        sig = load_signature_image(png_signature)

        writer = PdfWriter(clone_from=reader)
        target = writer.pages[-1]
        box = target.mediabox
        overlay_pdf = self._make_stamp_overlay(
            float(box.left), float(box.bottom), float(box.right), float(box.top), sig, assignment,
        )
        target.merge_page(PdfReader(BytesIO(overlay_pdf)).pages[0])

        out = BytesIO()
        writer.write(out)
        return out.getvalue()

    def stamp_box(self, left: float, bottom: float, right: float, top: float) -> Tuple[float, float, float, float]:
        """(x, y, width, height) of the signature box for a page with the given media box."""
        L = self._stamp
        x = max(left + L.margin, right - L.margin - L.box_width)
        y = bottom + L.margin
        return x, y, L.box_width, L.box_height

    def _make_stamp_overlay(self, left: float, bottom: float, right: float, top: float,
                            sig: Image.Image, assignment: WorkerAssignment) -> bytes:
        L = self._stamp
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(right, top))

        x, y, box_w, box_h = self.stamp_box(left, bottom, right, top)

        # --- Box
        c.saveState()
        c.setStrokeColorRGB(0.6, 0.6, 0.6)
        c.setLineWidth(1)
        c.setFillColor(Color(1, 1, 1, alpha=L.fill_opacity))
        c.rect(x, y, box_w, box_h, stroke=1, fill=1)
        c.restoreState()

        pad = L.padding
        max_w = box_w - pad * 2
        header_y = y + box_h - L.header_drop
        name_y = header_y - L.name_gap
        id_y = name_y - L.row_gap
        date_y = id_y - L.row_gap

        # --- Text rows
        when = format_local(assignment.signed_at, self._stamp_date_format, self._tz)
        rows = (
            ("Signature", "Helvetica-Bold", 12, header_y, _DARK),
            (assignment.signer_name or "-", "Helvetica-Bold", 10, name_y, _DARK),
            (f"ID: {assignment.signer_external_id or '-'}", "Helvetica", 9, id_y, _TEXT),
            (f"Date/time: {when}", "Helvetica", 9, date_y, _TEXT),
        )
        for text, font, size, row_y, rgb in rows:
            c.setFillColorRGB(*rgb)
            c.setFont(font, size)
            c.drawString(x + pad, row_y, _fit_text(text, font, size, max_w))

        # --- Token + signature image
        token_y = y + pad
        sig_y = token_y + L.token_gap
        token_text = f"Token: {shorten_token(assignment.token, L.token_head, L.token_tail)}"
        c.setFillColorRGB(*_MUTED)
        c.setFont("Helvetica", 7)
        c.drawString(x + pad, token_y, _fit_text(token_text, "Helvetica", 7, max_w))

        img_w, img_h = fit_within(sig.width, sig.height, max_w, L.image_max_height)
        c.drawImage(ImageReader(sig), x + pad, sig_y, width=img_w, height=img_h, mask="auto")

        c.save()
        return buf.getvalue()

    # ------------------------------------------------------------------ #
    #  Synthesize path                                                   #
    # ------------------------------------------------------------------ #
    def synthesize(self, meta: RenderMetadata, assignment: WorkerAssignment, png_signature: bytes) -> bytes:
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=A4)
        c.setTitle(meta.title)
        c.setSubject(f"token {assignment.token}")
        page = _SynthPage(c, self._synth)

        page.title(meta.title)
        for label, value in meta.rows:
            page.row(label, value)
        page.divider()

        if meta.checklist:
            page.heading(meta.checklist_title or "Questionnaire")
            page.checklist(meta.checklist)
            page.divider()
        if meta.verdict:
            page.verdict(*meta.verdict)

        page.row("Signed by", assignment.signer_name or "-")
        page.row("National ID", assignment.signer_external_id or "-")
        page.row("Date/time", format_local(assignment.signed_at, self._date_format, self._tz))
        page.row("Token", assignment.token)
        if assignment.geo is not None:
            page.row("Geolocation", assignment.geo.describe())

        page.signature_box(png_signature)

        c.showPage()
        c.save()
        return buf.getvalue()

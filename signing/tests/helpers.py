"""Builders shared by the signing tests (reportlab PDFs, Pillow PNGs, wired stores)."""
from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO
from zoneinfo import ZoneInfo

from PIL import Image, ImageDraw
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from core.logging.logic.logger import Logger
from signing.logic.certificate_generator import CertificateGenerator
from signing.logic.signature_vault import SignatureVault
from signing.logic.signing_transaction import SigningTransaction
from signing.repository.certificate_store import CertificateStore
from signing.repository.record_store import SQLiteRecordStore
from signing.repository.signable_repository import SignableRepository
from signing.repository.sync_queue import SQLiteSyncQueue

SANTIAGO = ZoneInfo("America/Santiago")
FIXED_NOW = datetime(2024, 3, 5, 13, 4, 5, tzinfo=timezone.utc)


def make_pdf(pages: int = 1, pagesize=A4) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=pagesize)
    for i in range(1, pages + 1):
        c.setFont("Helvetica", 14)
        c.drawString(72, pagesize[1] - 72, f"Page {i} of {pages}")
        c.showPage()
    c.save()
    return buf.getvalue()


def make_png(width: int = 300, height: int = 100) -> bytes:
    img = Image.new("RGBA", (width, height), (255, 255, 255, 0))
    draw = ImageDraw.Draw(img)
    draw.line((10, height - 20, width // 2, 15, width - 10, height - 30), fill=(0, 0, 0, 255), width=4)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def make_generator() -> CertificateGenerator:
    return CertificateGenerator(
        date_format="%d-%m-%Y %H:%M:%S",
        stamp_date_format="%d-%m-%Y %H:%M",
        tz=SANTIAGO,
    )


class Wiring:
    """In-memory stores plus a transaction over them."""

    def __init__(self, tmp_path, *, generator=None, clock=lambda: FIXED_NOW) -> None:
        db = tmp_path / "signoff.db"
        self.store = SQLiteRecordStore(db)
        self.entities = SignableRepository(self.store)
        self.certificates = CertificateStore(db)
        self.sync = SQLiteSyncQueue(db)
        self.audit = Logger(tmp_path / "logs.db")
        self.vault = SignatureVault.ephemeral()
        self.tx = SigningTransaction(
            self.entities,
            self.certificates,
            sync=self.sync,
            generator=generator or make_generator(),
            vault=self.vault,
            audit=self.audit,
            clock=clock,
        )

    def close(self) -> None:
        for repo in (self.store, self.certificates, self.sync, self.audit):
            repo.close()

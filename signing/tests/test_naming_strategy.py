"""Certificate file names."""
from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from core.helpers.date_time_helper import filename_stamp
from signing.logic.naming_strategy import (
    KindPrefixStrategy,
    NamingContext,
    SignedSuffixStrategy,
    sanitize,
    shorten_token,
)

SIGNED_AT = datetime(2024, 3, 5, 13, 4, 5, tzinfo=timezone.utc)


def test_sanitize_drops_unsafe_characters() -> None:
    assert sanitize("Juan Pérez!!") == "Juan_Prez"
    assert sanitize("12.345.678-9") == "12345678-9"
    assert sanitize("  a   b\tc ") == "a_b_c"
    assert sanitize("!!!", "signer") == "signer"
    assert sanitize(None) == ""


def test_shorten_token() -> None:
    token = "0123456789abcdefghijklmnopqrstuvwxyz"
    assert shorten_token(token) == "01234567…uvwxyz"
    assert shorten_token("short") == "short"


def test_signed_suffix_keeps_base_and_embeds_token() -> None:
    ctx = NamingContext(token="tok-123", signed_at=SIGNED_AT, original_file_name="Informe Mensual.pdf")
    assert SignedSuffixStrategy().propose_file_name(ctx) == "Informe_Mensual-signed_tok-123.pdf"


def test_signed_suffix_forces_pdf_extension() -> None:
    ctx = NamingContext(token="t1", signed_at=SIGNED_AT, original_file_name="plan.PDF")
    assert SignedSuffixStrategy().propose_file_name(ctx) == "plan-signed_t1.PDF"
    ctx = NamingContext(token="t1", signed_at=SIGNED_AT, original_file_name="scan")
    assert SignedSuffixStrategy().propose_file_name(ctx) == "scan-signed_t1.pdf"
    ctx = NamingContext(token="t1", signed_at=SIGNED_AT, original_file_name="¡¡.pdf")
    assert SignedSuffixStrategy().propose_file_name(ctx) == "document-signed_t1.pdf"


def test_kind_prefix_layout() -> None:
    ctx = NamingContext(
        token="tok-1",
        signed_at=SIGNED_AT,
        kind_prefix="FIT_FOR_WORK",
        signer_name="Juan Pérez!!",
        signer_external_id="12.345.678-9",
    )
    stamp = filename_stamp(SIGNED_AT, ZoneInfo("America/Santiago"))
    assert stamp == "20240305_100405"
    assert KindPrefixStrategy().propose_file_name(ctx) == f"FIT_FOR_WORK_Juan_Prez_12345678-9_{stamp}_tok-1.pdf"


def test_kind_prefix_skips_empty_parts() -> None:
    ctx = NamingContext(token="tok-1", signed_at=SIGNED_AT, kind_prefix="TALK", signer_name=None)
    name = KindPrefixStrategy().propose_file_name(ctx)
    assert name.startswith("TALK_signer_")
    assert name.endswith("_tok-1.pdf")
    assert "__" not in name


def test_kind_prefix_uses_context_timezone() -> None:
    ctx = NamingContext(token="t", signed_at=SIGNED_AT, kind_prefix="DOC", signer_name="A",
                        signer_external_id="1", tz=timezone.utc)
    assert KindPrefixStrategy().propose_file_name(ctx) == "DOC_A_1_20240305_130405_t.pdf"

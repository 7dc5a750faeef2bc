from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional, Protocol

from core.helpers.date_time_helper import filename_stamp

_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^A-Za-z0-9_\-]")

SIGNED_MARKER = "-signed"


def sanitize(value: Optional[str], fallback: str = "") -> str:
    """Whitespace runs become ``_``; anything outside ``[A-Za-z0-9_-]`` is dropped."""
    text = _WHITESPACE.sub("_", (value or "").strip())
    text = _UNSAFE.sub("", text)
    return text or fallback


def shorten_token(token: str, head: int = 8, tail: int = 6) -> str:
    """``first8…last6`` for display; short tokens are returned unchanged."""
    t = (token or "").strip()
    if len(t) <= head + tail + 3:
        return t
    return f"{t[:head]}…{t[-tail:]}"


@dataclass(frozen=True)
class NamingContext:
    token: str
    signed_at: datetime
    kind_prefix: str = ""
    signer_name: Optional[str] = None
    signer_external_id: Optional[str] = None
    original_file_name: Optional[str] = None
    tz: Optional[tzinfo] = None


class NamingStrategy(Protocol):
    def propose_file_name(self, ctx: NamingContext) -> str: ...


class SignedSuffixStrategy:
    """Stamped attachment: report.pdf -> report-signed_<token>.pdf"""
    def propose_file_name(self, ctx: NamingContext) -> str:
        root, ext = os.path.splitext(ctx.original_file_name or "")
        if ext.lower() != ".pdf":
            ext = ".pdf"
        base = sanitize(root, "document")
        return f"{base}{SIGNED_MARKER}_{sanitize(ctx.token)}{ext}"


class KindPrefixStrategy:
    """Synthesized certificate: PREFIX_name_id_yyyyMMdd_HHmmss_token.pdf"""
    def propose_file_name(self, ctx: NamingContext) -> str:
        parts = [
            sanitize(ctx.kind_prefix),
            sanitize(ctx.signer_name, "signer"),
            sanitize(ctx.signer_external_id),
            filename_stamp(ctx.signed_at, ctx.tz),
            sanitize(ctx.token),
        ]
        return "_".join(p for p in parts if p) + ".pdf"

from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class StampLayout:
    """
    Signature box drawn onto the last page of an attached PDF.
    Units are PDF points (1 pt = 1/72 inch), origin bottom-left.
    The box is anchored to the bottom-right corner at ``margin`` from both edges.
    """
    margin: float = 36.0
    box_width: float = 200.0
    box_height: float = 160.0
    padding: float = 10.0
    fill_opacity: float = 0.92
    header_drop: float = 18.0      # header baseline below the box top
    name_gap: float = 16.0         # header -> name row
    row_gap: float = 13.0          # name -> id -> date rows
    token_gap: float = 14.0        # token row -> image bottom
    image_max_height: float = 62.0
    token_head: int = 8
    token_tail: int = 6


@dataclass(frozen=True)
class SynthLayout:
    """
    Page geometry of a synthesized certificate, in millimetres on A4.
    """
    margin_x: float = 14.0
    top: float = 18.0
    right_edge: float = 196.0
    label_width: float = 35.0
    wrap_limit: float = 180.0
    row_height: float = 7.0
    line_height: float = 5.0
    signature_box_width: float = 170.0
    signature_box_height: float = 45.0
    signature_inset: float = 2.0

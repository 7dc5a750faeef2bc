from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Dict, Optional

PDF_MIME = "application/pdf"


@dataclass(frozen=True)
class Attachment:
    """
    A raw file carried by a signable record: byte buffer plus content type.
    """
    file_name: str
    mime_type: str
    content: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "content": base64.b64encode(self.content).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Attachment"]:
        if not data:
            return None
        return cls(
            file_name=data.get("file_name") or "",
            mime_type=data.get("mime_type") or "application/octet-stream",
            content=base64.b64decode(data.get("content") or ""),
        )


@dataclass(frozen=True)
class GeoPoint:
    """Best-effort device position captured at signing time."""
    lat: float
    lng: float
    accuracy: Optional[float] = None   # metres

    def describe(self) -> str:
        text = f"lat {self.lat}, lng {self.lng}"
        if self.accuracy:
            text += f" (±{self.accuracy:g}m)"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {"lat": self.lat, "lng": self.lng, "accuracy": self.accuracy}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["GeoPoint"]:
        if not data:
            return None
        acc = data.get("accuracy")
        return cls(lat=float(data["lat"]), lng=float(data["lng"]),
                   accuracy=float(acc) if acc is not None else None)

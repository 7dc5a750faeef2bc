"""Best-effort geolocation capture for the moment of signing."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from signing.models.attachment import GeoPoint

logger = logging.getLogger(__name__)

GeoProvider = Callable[[], Optional[GeoPoint]]


def acquire_geo(provider: Optional[GeoProvider], timeout: Optional[float] = None) -> Optional[GeoPoint]:
    """
    Ask ``provider`` for the current position, waiting at most ``timeout``
    seconds (default from ``[Signing] geo_timeout_seconds``).

    Returns None when no provider is available, the user denied permission,
    the provider failed, or it did not answer in time. Signing proceeds
    without a position in all of those cases.
    """
    if provider is None:
        return None
    if timeout is None:
        from core.config.config_service import get_config
        timeout = get_config().signing.geo_timeout_seconds

    result: dict = {}

    def _run() -> None:
        try:
            result["geo"] = provider()
        except PermissionError as ex:
            logger.info("Geolocation permission denied: %s", ex)
        except Exception as ex:
            logger.warning("Geolocation provider failed: %s", ex)

    worker = threading.Thread(target=_run, name="geo-acquire", daemon=True)
    worker.start()
    worker.join(timeout)
    if worker.is_alive():
        logger.info("Geolocation timed out after %.1fs; continuing without position", timeout)
        return None
    return result.get("geo")

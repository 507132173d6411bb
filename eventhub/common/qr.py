"""QR image rendering for tickets."""

import base64
import io
import json
import logging
from typing import Any, Dict, Optional

import qrcode

from eventhub.common.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

ERROR_CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


def render_qr_png(payload: Dict[str, Any], error_correction: str = "H") -> bytes:
    """Encode ``payload`` as JSON and render it into PNG bytes."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECTION_LEVELS[error_correction],
        box_size=settings.qr_box_size,
        border=settings.qr_border,
    )
    qr.add_data(json.dumps(payload, default=str, separators=(",", ":")))
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def render_qr_data_url(payload: Dict[str, Any], error_correction: str = "H") -> Optional[str]:
    """
    Render a ticket payload as a ``data:image/png;base64`` URL.

    Returns None on failure; a missing image must never fail the caller.
    """
    try:
        png_bytes = render_qr_png(payload, error_correction)
    except Exception as e:
        logger.error(f"QR code generation failed for ticket {payload.get('ticketId')}: {e}")
        return None
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("utf-8")

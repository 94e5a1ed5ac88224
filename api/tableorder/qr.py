# qr.py

"""QR token issuance and PNG rendering for tables."""

from __future__ import annotations

import uuid
from io import BytesIO

import qrcode

QR_PREFIX = "TABLE_"


def new_qr_code() -> str:
    """Return a fresh ``TABLE_<12 upper hex>`` token.

    Uniqueness is checked by the caller against the ``tables`` table.
    """

    return QR_PREFIX + uuid.uuid4().hex[:12].upper()


def scan_url(qr_code: str, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/api/tables/scan/{qr_code}"


def render_qr_png(qr_code: str, base_url: str) -> bytes:
    """Render the scan URL for ``qr_code`` as PNG bytes.

    Parameters
    ----------
    qr_code:
        Token stored on the table.
    base_url:
        Public base URL of the API; the scan path is appended to it.
    """

    img = qrcode.make(scan_url(qr_code, base_url))
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()

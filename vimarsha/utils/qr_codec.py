"""
QR Identifier Codec
Encode a Material ID into a QR image, decode a scanned payload back to a Material ID
"""
import io
import logging
from typing import List, Union
from urllib.parse import parse_qs, unquote, urlsplit

import qrcode
from qrcode.constants import ERROR_CORRECT_L
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from vimarsha.exceptions import DeviceAccessError, EmptyPayload, ValidationError

logger = logging.getLogger(__name__)

# Version 1 / level L holds a 7-character Material ID; the library grows the
# version only when a payload does not fit.
QR_VERSION = 1
QR_ERROR_CORRECTION = ERROR_CORRECT_L
DEFAULT_MODULE_SIZE = 6
DEFAULT_MARGIN = 2

FOREGROUND = "#000000"
BACKGROUND = "#ffffff"
LABEL_HEIGHT = 18


# ============================================================================
# ENCODE
# ============================================================================

def build_matrix(identifier: str, margin: int = DEFAULT_MARGIN) -> List[List[bool]]:
    """
    Build the QR module matrix for a Material ID.

    The identifier is the sole payload: no URL wrapping, no metadata.
    The returned matrix includes the quiet zone (``margin`` modules per side).
    """
    if not identifier or not identifier.strip():
        raise EmptyPayload()

    qr = qrcode.QRCode(
        version=QR_VERSION,
        error_correction=QR_ERROR_CORRECTION,
        box_size=1,
        border=margin,
    )
    qr.add_data(identifier)
    qr.make(fit=True)
    return qr.get_matrix()


def render_svg(identifier: str, module_size: int = DEFAULT_MODULE_SIZE,
               margin: int = DEFAULT_MARGIN) -> str:
    """
    Render a Material ID as an SVG document.

    Every dark module becomes one ``module_size`` square on a white
    background. Output depends only on the arguments, so encoding the same
    identifier twice gives identical markup.
    """
    matrix = build_matrix(identifier, margin=margin)
    count = len(matrix)
    size = count * module_size

    rects = []
    for row, cells in enumerate(matrix):
        for col, dark in enumerate(cells):
            if dark:
                rects.append(
                    f'<rect x="{col * module_size}" y="{row * module_size}" '
                    f'width="{module_size}" height="{module_size}"/>'
                )

    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" '
        f'viewBox="0 0 {size} {size}">'
        f'<rect width="100%" height="100%" fill="{BACKGROUND}"/>'
        f'<g fill="{FOREGROUND}" shape-rendering="crispEdges">{"".join(rects)}</g>'
        '</svg>'
    )


def render_png_label(identifier: str, module_size: int = DEFAULT_MODULE_SIZE,
                     margin: int = DEFAULT_MARGIN) -> bytes:
    """Render a printable PNG label: the QR code with the Material ID under it"""
    matrix = build_matrix(identifier, margin=margin)
    size = len(matrix) * module_size

    img = Image.new("RGB", (size, size + LABEL_HEIGHT), BACKGROUND)
    draw = ImageDraw.Draw(img)
    for row, cells in enumerate(matrix):
        for col, dark in enumerate(cells):
            if dark:
                x = col * module_size
                y = row * module_size
                draw.rectangle(
                    (x, y, x + module_size - 1, y + module_size - 1),
                    fill=FOREGROUND,
                )

    font = ImageFont.load_default()
    draw.text((module_size * margin, size), identifier, font=font, fill=FOREGROUND)

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


# ============================================================================
# DECODE
# ============================================================================

def decode_payload(payload: str) -> str:
    """
    Turn a scanned QR payload into a Material ID.

    Printed codes carry either the bare Material ID or a deep link to the
    public record page. For an absolute URL the Material ID is the last
    non-empty path segment (``https://host/materials/AB12345``); legacy links
    that carry it as an ``id`` query parameter are honoured too. Anything
    else is taken verbatim after trimming.

    Raises:
        EmptyPayload: nothing is left once the payload is trimmed
    """
    text = (payload or "").strip()
    identifier = text

    try:
        parts = urlsplit(text)
    except ValueError:
        parts = None

    if parts is not None and parts.scheme and parts.netloc:
        query_id = [v for v in parse_qs(parts.query).get("id", []) if v.strip()]
        if query_id:
            identifier = query_id[0]
        else:
            segments = [s for s in parts.path.split("/") if s.strip()]
            identifier = unquote(segments[-1]) if segments else ""

    identifier = identifier.strip()
    if not identifier:
        raise EmptyPayload()
    return identifier


def read_qr_text(image: Union[bytes, io.IOBase]) -> str:
    """
    Read the raw text of the first QR symbol in a still photo.

    Raises:
        ValidationError: the upload is not an image
        EmptyPayload: no QR symbol was found
        DeviceAccessError: the zbar decoder is not available on this host
    """
    try:
        from pyzbar.pyzbar import decode as zbar_decode
    except ImportError as e:
        logger.error(f"QR decoder unavailable: {e}")
        raise DeviceAccessError() from e

    stream = io.BytesIO(image) if isinstance(image, bytes) else image
    try:
        img = Image.open(stream).convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("The uploaded file is not a readable image.") from e

    symbols = zbar_decode(img)
    if not symbols:
        raise EmptyPayload("No QR code was found in the photo.")
    return symbols[0].data.decode("utf-8")


def decode_image(image: Union[bytes, io.IOBase]) -> str:
    """Decode a still photo of a printed code straight to a Material ID"""
    return decode_payload(read_qr_text(image))

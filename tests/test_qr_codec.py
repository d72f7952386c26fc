import io
import sys

import pytest
from PIL import Image

from vimarsha.exceptions import DeviceAccessError, EmptyPayload
from vimarsha.utils.qr_codec import (
    build_matrix,
    decode_image,
    decode_payload,
    render_png_label,
    render_svg,
)


def test_svg_is_deterministic():
    assert render_svg("AB12345") == render_svg("AB12345")


def test_svg_black_on_white_with_quiet_zone():
    svg = render_svg("AB12345", module_size=6, margin=2)
    # version 1 is 21 modules, plus 2 quiet modules per side
    assert svg.startswith('<svg xmlns="http://www.w3.org/2000/svg" width="150" height="150"')
    assert 'fill="#ffffff"' in svg
    assert '<g fill="#000000"' in svg
    # nothing is drawn inside the quiet zone
    assert 'x="0"' not in svg and 'y="0"' not in svg


def test_matrix_is_version_one_for_material_ids():
    matrix = build_matrix("KZJ1701", margin=2)
    assert len(matrix) == 25
    assert all(len(row) == 25 for row in matrix)
    assert not any(matrix[0]) and not any(matrix[1])


def test_different_ids_give_different_codes():
    assert render_svg("AB12345") != render_svg("AB12346")


@pytest.mark.parametrize("blank", ["", "   "])
def test_encoding_blank_identifier_is_rejected(blank):
    with pytest.raises(EmptyPayload):
        render_svg(blank)


def test_png_label_is_deterministic_png():
    first = render_png_label("AB12345")
    assert first[:8] == b"\x89PNG\r\n\x1a\n"
    assert first == render_png_label("AB12345")

    img = Image.open(io.BytesIO(first))
    assert img.width == 150
    assert img.height > 150


@pytest.mark.parametrize("payload, expected", [
    ("AB12345", "AB12345"),
    ("  AB12345\n", "AB12345"),
    ("https://app.example/materials/AB12345", "AB12345"),
    ("https://app.example/materials/AB12345/", "AB12345"),
    ("https://app.example/track/installation/material?id=AB12345", "AB12345"),
    ("http://localhost:5000/materials/AB%2012", "AB 12"),
    ("AB/123", "AB/123"),
    ("mailto:someone", "mailto:someone"),
])
def test_decode_payload(payload, expected):
    assert decode_payload(payload) == expected


@pytest.mark.parametrize("payload", ["", "   ", None, "https://app.example/", "https://app.example/?id="])
def test_decode_payload_empty(payload):
    with pytest.raises(EmptyPayload):
        decode_payload(payload)


def test_decode_image_without_zbar_is_device_error(monkeypatch):
    monkeypatch.setitem(sys.modules, "pyzbar", None)
    monkeypatch.setitem(sys.modules, "pyzbar.pyzbar", None)
    with pytest.raises(DeviceAccessError):
        decode_image(render_png_label("AB12345"))


def _padded(png_bytes):
    label = Image.open(io.BytesIO(png_bytes)).convert("RGB")
    canvas = Image.new("RGB", (label.width + 80, label.height + 80), "white")
    canvas.paste(label, (40, 40))
    buffer = io.BytesIO()
    canvas.save(buffer, format="PNG")
    return buffer.getvalue()


def test_photo_round_trip():
    pytest.importorskip("pyzbar.pyzbar")
    assert decode_image(_padded(render_png_label("KZJ1701"))) == "KZJ1701"


def test_photo_without_code():
    pytest.importorskip("pyzbar.pyzbar")
    blank = io.BytesIO()
    Image.new("RGB", (120, 120), "white").save(blank, format="PNG")
    with pytest.raises(EmptyPayload):
        decode_image(blank.getvalue())

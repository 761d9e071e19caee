import base64
import datetime as dt
import io

import pytest
from PIL import Image

from legen.common.exceptions import LetterValidationError, MalformedRecordError
from legen.common.models import SignatureInput
from legen.signature import SignaturePad, signature_from_data_url, signature_from_input

NOW = dt.datetime(2024, 3, 5, 9, 0, 0)


def _image(png: bytes) -> Image.Image:
    return Image.open(io.BytesIO(png))


def test_new_pad_is_blank() -> None:
    pad = SignaturePad()
    assert pad.is_empty
    assert not pad.is_drawing

    img = _image(pad.to_png())
    assert img.size == (500, 200)
    assert img.getextrema()[3] == (0, 0)  # fully transparent


def test_move_without_down_draws_nothing() -> None:
    pad = SignaturePad()
    pad.pointer_move(10, 10)
    pad.pointer_move(50, 50)
    assert pad.is_empty


def test_stroke_paints_ink() -> None:
    pad = SignaturePad(stroke_width=6)
    pad.pointer_down(10, 100)
    assert pad.is_drawing
    pad.pointer_move(200, 100)
    pad.pointer_up()

    assert not pad.is_drawing
    assert not pad.is_empty
    img = _image(pad.to_png()).convert("RGBA")
    assert img.getpixel((100, 100)) == (0, 0, 0, 255)
    assert img.getpixel((100, 10))[3] == 0


def test_pointer_leave_ends_the_stroke() -> None:
    pad = SignaturePad()
    pad.pointer_down(10, 10)
    pad.pointer_move(20, 20)
    pad.pointer_leave()
    before = pad.to_png()

    pad.pointer_move(300, 150)
    assert pad.to_png() == before


def test_clear_resets_the_surface() -> None:
    pad = SignaturePad.replay([[(0, 0), (100, 100)]])
    assert not pad.is_empty

    pad.clear()
    assert pad.is_empty
    assert pad.to_png() == SignaturePad().to_png()


def test_save_packages_metadata() -> None:
    pad = SignaturePad.replay([[(0, 0), (100, 100)]])
    record = pad.save("Prof. Ravi", "staff-1", now=NOW)

    assert record.signed_by_name == "Prof. Ravi"
    assert record.signed_by_id == "staff-1"
    assert record.signed_at == NOW
    assert _image(record.image_png).format == "PNG"


def test_data_url_is_accepted() -> None:
    png = SignaturePad.replay([[(5, 5), (60, 60)]]).to_png()
    url = "data:image/png;base64," + base64.b64encode(png).decode()

    record = signature_from_data_url(url, "Dr. Meena", "hod-1", NOW)
    assert record.image_png == png


def test_data_url_must_hold_a_png() -> None:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4)).save(buf, format="JPEG")
    url = "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()

    with pytest.raises(MalformedRecordError):
        signature_from_data_url(url, "Dr. Meena", "hod-1", NOW)
    with pytest.raises(MalformedRecordError):
        signature_from_data_url("data:image/png;base64,@@@", "Dr. Meena", "hod-1")


def test_truncated_data_url_is_rejected(truncated_png) -> None:
    url = "data:image/png;base64," + base64.b64encode(truncated_png).decode()
    with pytest.raises(MalformedRecordError, match="could not be decoded"):
        signature_from_data_url(url, "Dr. Meena", "hod-1", NOW)


def test_input_from_strokes_uses_given_size() -> None:
    signature = SignatureInput(strokes=[[(1, 1), (30, 30)]], width=300, height=100)
    record = signature_from_input(signature, "Prof. Ravi", "staff-1", NOW)
    assert _image(record.image_png).size == (300, 100)


def test_empty_strokes_are_rejected() -> None:
    with pytest.raises(LetterValidationError, match="provide a signature"):
        signature_from_input(SignatureInput(strokes=[]), "Prof. Ravi", "staff-1", NOW)

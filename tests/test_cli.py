import json

from click.testing import CliRunner

from legen.cli import cli
from legen.documents import count_pages, render


def _letter_file(tmp_path, student, hod, **form_changes):
    form = {
        "recipient_id": "hod-1",
        "letter_type": "apology",
        "reason": "missing the lab session",
    }
    form.update(form_changes)
    path = tmp_path / "letter.json"
    path.write_text(
        json.dumps(
            {
                "sender": student.model_dump(),
                "recipients": [hod.model_dump()],
                "form": form,
            }
        )
    )
    return path


def test_cli_help():
    """Test CLI help command."""
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Usage:" in result.output
    for command in ("serve", "compose", "sign", "verify", "stamp", "send"):
        assert command in result.output


def test_cli_serve_help():
    """Test serve command help."""
    runner = CliRunner()
    result = runner.invoke(cli, ["serve", "--help"])
    assert result.exit_code == 0
    assert "Start the letter server" in result.output


def test_cli_compose_text(tmp_path, student, hod):
    """Test compose command printing the letter text."""
    path = _letter_file(tmp_path, student, hod)
    result = CliRunner().invoke(
        cli, ["compose", str(path), "--text", "--date", "2024-03-05"]
    )
    assert result.exit_code == 0, result.output
    assert "Sub: Apology for missing the lab session - Reg" in result.output
    assert "05-03-2024" in result.output
    assert "Respected Sir/Madam," in result.output


def test_cli_compose_pdf_with_signature(tmp_path, student, hod):
    """Test compose command writing a signed PDF."""
    path = _letter_file(tmp_path, student, hod)
    strokes = tmp_path / "strokes.json"
    strokes.write_text(json.dumps([[[10, 10], [120, 80]]]))
    output = tmp_path / "out.pdf"

    result = CliRunner().invoke(
        cli,
        ["compose", str(path), "-o", str(output), "--signature", str(strokes)],
    )
    assert result.exit_code == 0, result.output
    assert count_pages(output.read_bytes()) == 1


def test_cli_compose_reports_missing_fields(tmp_path, student, hod):
    path = _letter_file(tmp_path, student, hod, reason=None)
    result = CliRunner().invoke(cli, ["compose", str(path), "--text"])
    assert result.exit_code != 0
    assert "reason" in result.output


def test_cli_sign_and_verify(tmp_path):
    """Test sign then verify, and verify of a modified document."""
    document = tmp_path / "doc.pdf"
    document.write_bytes(render("Signed content"))
    signature = tmp_path / "doc.sig.json"
    runner = CliRunner()

    result = runner.invoke(cli, ["sign", str(document), "-o", str(signature)])
    assert result.exit_code == 0, result.output
    assert set(json.loads(signature.read_text())) == {"digital_signature", "public_key"}

    result = runner.invoke(cli, ["verify", str(document), "--signature-file", str(signature)])
    assert result.exit_code == 0
    assert "Valid" in result.output

    document.write_bytes(document.read_bytes() + b"\n")
    result = runner.invoke(cli, ["verify", str(document), "--signature-file", str(signature)])
    assert result.exit_code == 1
    assert "Invalid" in result.output


def test_cli_stamp(tmp_path, sample_pdf):
    document = tmp_path / "doc.pdf"
    document.write_bytes(sample_pdf)
    strokes = tmp_path / "strokes.json"
    strokes.write_text(json.dumps([[[10, 10], [120, 80]]]))
    output = tmp_path / "stamped.pdf"

    result = CliRunner().invoke(
        cli,
        [
            "stamp",
            str(document),
            "--signature",
            str(strokes),
            "--name",
            "Prof. Ravi",
            "-o",
            str(output),
        ],
    )
    assert result.exit_code == 0, result.output
    assert output.read_bytes() != sample_pdf
    assert count_pages(output.read_bytes()) == 1


def test_cli_compose_rejects_empty_strokes(tmp_path, student, hod):
    path = _letter_file(tmp_path, student, hod)
    strokes = tmp_path / "strokes.json"
    strokes.write_text("[]")

    result = CliRunner().invoke(
        cli,
        ["compose", str(path), "-o", str(tmp_path / "out.pdf"), "--signature", str(strokes)],
    )
    assert result.exit_code == 1
    assert "Please provide a signature." in result.output
    assert not (tmp_path / "out.pdf").exists()


def test_cli_compose_rejects_non_png_signature(tmp_path, student, hod):
    path = _letter_file(tmp_path, student, hod)
    image = tmp_path / "signature.png"
    image.write_bytes(b"this is not an image at all")

    result = CliRunner().invoke(
        cli,
        ["compose", str(path), "-o", str(tmp_path / "out.pdf"), "--signature", str(image)],
    )
    assert result.exit_code == 1
    assert "Signature image could not be decoded" in result.output


def test_cli_stamp_rejects_malformed_strokes(tmp_path, sample_pdf):
    document = tmp_path / "doc.pdf"
    document.write_bytes(sample_pdf)
    strokes = tmp_path / "strokes.json"
    strokes.write_text("{not json")

    result = CliRunner().invoke(
        cli,
        [
            "stamp",
            str(document),
            "--signature",
            str(strokes),
            "--name",
            "Prof. Ravi",
            "-o",
            str(tmp_path / "stamped.pdf"),
        ],
    )
    assert result.exit_code == 1
    assert "Invalid signature file" in result.output

import pytest

from services.errors import EmptyDocument, UnreadableDocument, UnsupportedFormat
from services.text_extractor import DOCX_MIME, PDF_MIME, TEXT_MIME, ensure_supported, extract


def _make_pdf(text: str) -> bytes:
    """Single-page PDF with one line of Helvetica text and a valid xref table."""
    stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"
    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode()
    return bytes(out)


def test_ensure_supported_normalizes_parameters():
    assert ensure_supported("text/plain; charset=utf-8") == TEXT_MIME
    assert ensure_supported("Application/PDF") == PDF_MIME


def test_ensure_supported_rejects_unknown():
    with pytest.raises(UnsupportedFormat):
        ensure_supported("image/png")


def test_extract_plaintext(tmp_path):
    path = tmp_path / "resume.txt"
    path.write_text("Python developer at Acme\n", encoding="utf-8")
    assert extract(path, TEXT_MIME) == "Python developer at Acme"


def test_extract_pdf(tmp_path):
    path = tmp_path / "resume.pdf"
    path.write_bytes(_make_pdf("Senior Python Engineer"))
    assert "Senior Python Engineer" in extract(path, PDF_MIME)


def test_extract_docx(tmp_path):
    from docx import Document

    document = Document()
    document.add_paragraph("Jane Doe")
    document.add_paragraph("React developer at Globex")
    path = tmp_path / "resume.docx"
    document.save(str(path))

    text = extract(path, DOCX_MIME)
    assert "Jane Doe" in text
    assert "React developer at Globex" in text


def test_extract_empty_document(tmp_path):
    path = tmp_path / "blank.txt"
    path.write_text("   \n\n", encoding="utf-8")
    with pytest.raises(EmptyDocument):
        extract(path, TEXT_MIME)


def test_extract_unsupported_type(tmp_path):
    path = tmp_path / "resume.png"
    path.write_bytes(b"\x89PNG")
    with pytest.raises(UnsupportedFormat):
        extract(path, "image/png")


def test_extract_corrupt_pdf(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf at all")
    with pytest.raises(UnreadableDocument):
        extract(path, PDF_MIME)

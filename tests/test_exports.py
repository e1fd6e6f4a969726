"""
Tests for cover letter export.
"""

from io import BytesIO

import pytest
from docx import Document
from pypdf import PdfReader

from ats.exporters import export_cover_letter, export_filename, safe_name

LETTER = "Dear Hiring Manager,\n\nI am excited to apply <really>.\n\nSincerely,\nJane"


@pytest.mark.parametrize(
    "value,default,expected",
    [
        ("Senior Engineer", "cover", "senior_engineer"),
        ("C++ / Rust Dev", "cover", "c_rust_dev"),
        ("", "cover", "cover"),
        (None, "letter", "letter"),
        ("ACME, Inc.", "letter", "acme_inc_"),
    ],
)
def test_safe_name(value, default, expected):
    assert safe_name(value, default) == expected


def test_export_filename_extensions():
    assert export_filename("Engineer", "Acme", "pdf") == "engineer_acme.pdf"
    assert export_filename("Engineer", "Acme", "docx") == "engineer_acme.docx"
    assert export_filename(None, None, "text") == "cover_letter.txt"


def test_unknown_export_kind():
    with pytest.raises(ValueError):
        export_cover_letter("odt", "hi")


def test_pdf_contains_letter_text():
    data, filename, mimetype = export_cover_letter("pdf", LETTER, "Engineer", "Acme")

    assert data.startswith(b"%PDF")
    assert mimetype == "application/pdf"
    text = "".join(page.extract_text() for page in PdfReader(BytesIO(data)).pages)
    assert "Dear Hiring Manager" in text
    assert "<really>" in text


def test_docx_has_one_paragraph_per_block():
    data, _, _ = export_cover_letter("docx", LETTER)
    paragraphs = [p.text for p in Document(BytesIO(data)).paragraphs]
    assert paragraphs == [
        "Dear Hiring Manager,",
        "I am excited to apply <really>.",
        "Sincerely,\nJane",
    ]


@pytest.mark.parametrize(
    "path,mimetype,filename",
    [
        ("/api/cover-letter/export/pdf", "application/pdf", "engineer_acme_corp.pdf"),
        (
            "/api/cover-letter/export/docx",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "engineer_acme_corp.docx",
        ),
        ("/api/cover-letter/export/text", "text/plain", "engineer_acme_corp.txt"),
    ],
)
def test_export_endpoints(client, auth_headers, path, mimetype, filename):
    response = client.post(
        path,
        json={"content": LETTER, "jobTitle": "Engineer", "company": "Acme Corp"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.mimetype == mimetype
    disposition = response.headers["Content-Disposition"]
    assert disposition.startswith("attachment")
    assert filename in disposition


def test_text_export_is_utf8(client, auth_headers):
    response = client.post(
        "/api/cover-letter/export/text", json={"content": "Merci, Zoë"}, headers=auth_headers
    )
    assert response.data == "Merci, Zoë".encode("utf-8")
    assert "cover_letter.txt" in response.headers["Content-Disposition"]


def test_export_with_empty_content(client, auth_headers):
    response = client.post("/api/cover-letter/export/pdf", json={}, headers=auth_headers)
    assert response.status_code == 200
    assert response.data.startswith(b"%PDF")

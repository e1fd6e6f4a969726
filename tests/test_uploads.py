"""
Tests for image uploads, serving stored files and resume import.
"""

from io import BytesIO

import pytest
from docx import Document

from ats.uploads import unique_name

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _stored_files(config):
    if not config.upload_dir.exists():
        return []
    return list(config.upload_dir.iterdir())


def _upload(client, headers, filename, payload, field="image", url="/api/upload"):
    return client.post(
        url,
        data={field: (BytesIO(payload), filename)},
        content_type="multipart/form-data",
        headers=headers,
    )


# ===== Images =====


@pytest.mark.parametrize("url", ["/api/upload", "/api/upload-profile-pic"])
def test_upload_image_and_serve_it(client, config, auth_headers, url):
    response = _upload(client, auth_headers, "my photo.png", PNG_BYTES, url=url)

    assert response.status_code == 200
    stored_url = response.get_json()["url"]
    assert stored_url.startswith("/uploads/")
    assert stored_url.endswith("-my_photo.png")

    served = client.get(stored_url)
    assert served.status_code == 200
    assert served.data == PNG_BYTES


def test_upload_accepts_file_field(client, auth_headers):
    response = _upload(client, auth_headers, "logo.JPG", b"jpegdata", field="file")
    assert response.status_code == 200


def test_oversized_upload_is_rejected_before_writing(client, config, auth_headers):
    six_mb = b"\x00" * (6 * 1024 * 1024)
    response = _upload(client, auth_headers, "huge.png", six_mb)

    assert response.status_code == 400
    assert response.get_json() == {"error": "File too large (max 5 MB)", "code": "VALIDATION_ERROR"}
    assert _stored_files(config) == []


def test_body_far_over_limit_is_400(client, config, auth_headers):
    response = _upload(client, auth_headers, "huge.png", b"\x00" * (11 * 1024 * 1024))
    assert response.status_code == 400
    assert _stored_files(config) == []


def test_non_image_extension_is_rejected(client, config, auth_headers):
    response = _upload(client, auth_headers, "payload.exe", b"MZ")

    assert response.status_code == 400
    assert response.get_json()["error"] == "Only image files are allowed (gif, jpeg, jpg, png)"
    assert _stored_files(config) == []


def test_missing_file_is_rejected(client, auth_headers):
    response = client.post("/api/upload", data={}, content_type="multipart/form-data", headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json()["error"] == "No file uploaded"


def test_upload_requires_token(client, config):
    response = _upload(client, {}, "photo.png", PNG_BYTES)
    assert response.status_code == 401
    assert _stored_files(config) == []


def test_serving_missing_upload_is_404(client):
    assert client.get("/uploads/nope.png").status_code == 404


def test_serving_cannot_escape_upload_dir(client):
    assert client.get("/uploads/../config.yaml").status_code == 404


def test_unique_name_sanitizes():
    name = unique_name("../../etc/passwd.png", now=1700000000.0)
    assert name.startswith("1700000000000-")
    assert name.endswith("-etc_passwd.png")
    assert "/" not in name


# ===== Resume import =====


def _import(client, headers, filename, payload, field="resume"):
    return client.post(
        "/api/resumes/import",
        data={field: (BytesIO(payload), filename)},
        content_type="multipart/form-data",
        headers=headers,
    )


def test_import_text_resume_returns_preview(client, auth_headers):
    text = "Jane Doe\nSoftware Engineer\n" + "x" * 2000
    response = _import(client, auth_headers, "resume.txt", text.encode())

    assert response.status_code == 200
    body = response.get_json()
    assert body["text"].startswith("Jane Doe\nSoftware Engineer")
    assert len(body["text"]) == 1000


def test_import_markdown_via_file_field(client, auth_headers):
    response = _import(client, auth_headers, "resume.md", b"# Jane Doe", field="file")
    assert response.get_json()["text"] == "# Jane Doe"


def test_import_docx(client, auth_headers):
    doc = Document()
    doc.add_paragraph("Jane Doe")
    doc.add_paragraph("Python, SQL")
    buf = BytesIO()
    doc.save(buf)

    response = _import(client, auth_headers, "resume.docx", buf.getvalue())
    assert response.status_code == 200
    assert response.get_json()["text"] == "Jane Doe\nPython, SQL"


def test_import_corrupt_docx_is_400(client, auth_headers):
    response = _import(client, auth_headers, "resume.docx", b"not a zip")
    assert response.status_code == 400


def test_import_rejects_other_types(client, auth_headers):
    response = _import(client, auth_headers, "resume.exe", b"MZ")
    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid file type. Only PDF, DOCX, TXT, MD allowed"


def test_import_without_file(client, auth_headers):
    response = client.post(
        "/api/resumes/import", data={}, content_type="multipart/form-data", headers=auth_headers
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "No file uploaded"

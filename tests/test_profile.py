from __future__ import annotations

from pathlib import Path

from conftest import auth_headers
from core.config import settings
from models.user import User


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def test_get_profile(client, student_headers, batch):
    res = client.get("/api/profile/", headers=student_headers)

    assert res.status_code == 200
    body = res.json()
    assert body["first_name"] == "Asha"
    assert body["batch_name"] == batch.name
    assert body["profile_complete"] is True


def test_completing_profile_changes_home(client, db, batch, password_hash):
    user = User(username="newbie", password_hash=password_hash)
    db.add(user)
    db.commit()
    headers = auth_headers(user)
    assert client.get("/api/auth/me", headers=headers).json()["home"] == "/profile"

    res = client.patch(
        "/api/profile/",
        json={"first_name": " Neel ", "last_name": "Shah", "batch_id": str(batch.id), "semester_number": 3},
        headers=headers,
    )

    assert res.status_code == 200, res.text
    assert res.json()["first_name"] == "Neel"
    assert res.json()["profile_complete"] is True
    assert client.get("/api/auth/me", headers=headers).json()["home"] == "/student"


def test_profile_rejects_unknown_batch(client, student_headers):
    res = client.patch(
        "/api/profile/",
        json={"batch_id": "00000000-0000-0000-0000-000000000000"},
        headers=student_headers,
    )
    assert res.status_code == 404
    assert res.json()["detail"] == "BATCH_NOT_FOUND"


def test_profile_rejects_out_of_range_semester(client, student_headers):
    res = client.patch("/api/profile/", json={"semester_number": 13}, headers=student_headers)
    assert res.status_code == 422


def test_avatar_upload_replaces_previous(client, student_headers):
    first = client.post(
        "/api/profile/avatar",
        files={"file": ("me.png", PNG_BYTES, "image/png")},
        headers=student_headers,
    )
    assert first.status_code == 200, first.text
    first_url = first.json()["avatar_url"]
    assert first_url.startswith("/uploads/avatars/")
    first_path = Path(settings.upload_dir) / "avatars" / first_url.rsplit("/", 1)[-1]
    assert first_path.exists()
    assert client.get(first_url).content == PNG_BYTES

    second = client.post(
        "/api/profile/avatar",
        files={"file": ("me.png", PNG_BYTES, "image/png")},
        headers=student_headers,
    )

    assert second.json()["avatar_url"] != first_url
    assert not first_path.exists()


def test_avatar_rejects_non_images(client, student_headers):
    res = client.post(
        "/api/profile/avatar",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=student_headers,
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "UNSUPPORTED_IMAGE_TYPE"


def test_avatar_too_large(client, student_headers, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", 16)
    res = client.post(
        "/api/profile/avatar",
        files={"file": ("me.png", PNG_BYTES, "image/png")},
        headers=student_headers,
    )
    assert res.status_code == 413
    assert res.json()["detail"] == "FILE_TOO_LARGE"

from __future__ import annotations

import pytest

from conftest import PREFIX, project_headers

pytestmark = [pytest.mark.acceptance, pytest.mark.storage]

STORAGE = f"{PREFIX}/storage"


def test_upload_list_download_delete(client, signup):
    headers = signup("p1")

    r = client.post(
        f"{STORAGE}/upload",
        files=[("files", ("test-file.txt", b"this is a test file", "text/plain"))],
        headers=headers,
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["message"] == "Files uploaded successfully"
    assert len(body["files"]) == 1
    stored = body["files"][0]
    assert stored["originalname"] == "test-file.txt"
    assert stored["filename"].endswith("-test-file.txt")
    assert stored["size"] == 19
    assert stored["mimetype"].startswith("text/plain")

    names = client.get(f"{STORAGE}/files", headers=headers).json()
    assert stored["filename"] in names

    r = client.get(f"{STORAGE}/files/{stored['filename']}", headers=headers)
    assert r.status_code == 200
    assert stored["filename"] in r.headers["content-disposition"]
    assert r.text == "this is a test file"

    r = client.delete(f"{STORAGE}/files/{stored['filename']}", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"message": "File deleted successfully"}
    assert stored["filename"] not in client.get(f"{STORAGE}/files", headers=headers).json()


def test_upload_several_files(client, signup):
    headers = signup("p1")
    files = [("files", (f"f{i}.txt", b"x" * i, "text/plain")) for i in range(1, 4)]
    r = client.post(f"{STORAGE}/upload", files=files, headers=headers)
    assert r.status_code == 201
    assert [f["size"] for f in r.json()["files"]] == [1, 2, 3]


def test_upload_without_files_is_400(client, signup):
    headers = signup("p1")
    r = client.post(f"{STORAGE}/upload", data={"note": "nothing"}, headers=headers)
    assert r.status_code == 400


def test_upload_limit(client, signup):
    headers = signup("p1")
    files = [("files", (f"f{i}.txt", b"x", "text/plain")) for i in range(13)]
    assert client.post(f"{STORAGE}/upload", files=files, headers=headers).status_code == 400


def test_missing_files_are_404(client, signup):
    headers = signup("p1")
    assert client.get(f"{STORAGE}/files/nope.txt", headers=headers).status_code == 404
    assert client.delete(f"{STORAGE}/files/nope.txt", headers=headers).status_code == 404


def test_storage_requires_auth(client):
    assert client.get(f"{STORAGE}/files", headers=project_headers("p1")).status_code == 401


@pytest.mark.tenancy
def test_uploads_are_per_project(client, signup):
    h1 = signup("p1")
    h2 = signup("p2")
    r = client.post(f"{STORAGE}/upload", files=[("files", ("a.txt", b"a", "text/plain"))], headers=h1)
    name = r.json()["files"][0]["filename"]
    assert client.get(f"{STORAGE}/files", headers=h2).json() == []
    assert client.get(f"{STORAGE}/files/{name}", headers=h2).status_code == 404

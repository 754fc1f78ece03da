"""目录树接口集成测试：认证、统一响应结构与典型操作流程。"""

from fastapi.testclient import TestClient

API = "/api/v1"


def _create_folder(client, headers, name, parent_id=None, **extra):
    resp = client.post(f"{API}/folders", json={"name": name, "parentId": parent_id, **extra}, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def test_health_check(client: TestClient):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"status": "healthy"}


def test_requests_without_token_are_rejected(client: TestClient):
    resp = client.get(f"{API}/folders/contents")
    assert resp.status_code == 401
    assert resp.json()["code"] == 401


def test_invalid_token_is_rejected(client: TestClient):
    resp = client.get(f"{API}/folders/contents", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_folder_lifecycle(client: TestClient, headers):
    docs = _create_folder(client, headers, "Docs")
    assert docs["type"] == "folder"
    assert docs["path"] == "/docs"
    assert docs["itemCount"] == 0

    work = _create_folder(client, headers, "Work", docs["id"])
    assert work["pathSegments"] == [{"id": docs["id"], "name": "Docs"}]

    contents = client.get(f"{API}/folders/contents/{docs['id']}", headers=headers).json()["data"]
    assert contents["folder"]["itemCount"] == 1
    assert [item["name"] for item in contents["items"]] == ["Work"]

    renamed = client.patch(f"{API}/folders/{docs['id']}/rename", json={"name": "Documents"}, headers=headers)
    assert renamed.status_code == 200
    fetched = client.get(f"{API}/folders/{work['id']}", headers=headers).json()["data"]
    assert fetched["path"] == "/documents/work"


def test_duplicate_create_is_auto_renamed(client: TestClient, headers):
    _create_folder(client, headers, "Docs")
    second = _create_folder(client, headers, "Docs")
    assert second["name"] == "Docs (2)"


def test_rename_conflict_returns_suggestion(client: TestClient, headers):
    _create_folder(client, headers, "b")
    a = _create_folder(client, headers, "a")

    resp = client.patch(f"{API}/folders/{a['id']}/rename", json={"name": "b"}, headers=headers)
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == 409
    assert body["data"]["suggestedName"] == "b (2)"

    resp = client.patch(
        f"{API}/folders/{a['id']}/rename", json={"name": "b", "duplicateAction": "keepBoth"}, headers=headers
    )
    assert resp.json()["data"]["name"] == "b (2)"


def test_invalid_name_returns_400(client: TestClient, headers):
    resp = client.post(f"{API}/folders", json={"name": "bad/name"}, headers=headers)
    assert resp.status_code == 400


def test_move_into_descendant_returns_409(client: TestClient, headers):
    a = _create_folder(client, headers, "a")
    b = _create_folder(client, headers, "b", a["id"])

    resp = client.patch(f"{API}/folders/{a['id']}/move", json={"parentId": b["id"]}, headers=headers)
    assert resp.status_code == 409

    resp = client.patch(f"{API}/folders/{b['id']}/move", json={"parentId": None}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["path"] == "/b"


def test_file_metadata_endpoints(client: TestClient, headers):
    folder = _create_folder(client, headers, "media")
    resp = client.post(
        f"{API}/files",
        json={"name": "Clip.MP4", "parentId": folder["id"], "size": 1234, "mimeType": "video/mp4"},
        headers=headers,
    )
    assert resp.status_code == 200
    f = resp.json()["data"]
    assert f["type"] == "file"
    assert f["extension"] == "mp4"
    assert f["path"] == "/media/clip.mp4"

    # 文件接口不接受文件夹 ID
    assert client.get(f"{API}/files/{folder['id']}", headers=headers).status_code == 404

    pinned = client.patch(f"{API}/files/{f['id']}/pin", json={"isPinned": True}, headers=headers)
    assert pinned.json()["data"]["isPinned"] is True
    pins = client.get(f"{API}/pins/contents", headers=headers).json()["data"]
    assert [item["id"] for item in pins["items"]] == [f["id"]]


def test_trash_flow(client: TestClient, headers):
    a = _create_folder(client, headers, "a")
    b = _create_folder(client, headers, "b", a["id"])

    assert client.delete(f"{API}/nodes/{b['id']}", headers=headers).status_code == 200
    assert client.delete(f"{API}/nodes/{a['id']}", headers=headers).status_code == 200

    flag = client.get(f"{API}/folders/{b['id']}/has-deleted-ancestor", headers=headers).json()["data"]
    assert flag["hasDeletedAncestor"] is True

    trash = client.get(f"{API}/trash/contents", headers=headers).json()["data"]
    by_id = {item["id"]: item for item in trash["items"]}
    assert by_id[b["id"]]["hasDeletedAncestor"] is True
    assert by_id[a["id"]]["hasDeletedAncestor"] is False

    restored = client.post(f"{API}/nodes/{b['id']}/restore", json={"moveToRoot": True}, headers=headers)
    assert restored.status_code == 200
    assert restored.json()["data"]["path"] == "/b"

    emptied = client.delete(f"{API}/trash/empty", headers=headers).json()["data"]
    assert emptied["deletedFolderCount"] == 1
    assert client.get(f"{API}/folders/{a['id']}", headers=headers).status_code == 404

    summary = client.delete(f"{API}/nodes/{b['id']}/permanent", headers=headers).json()["data"]
    assert summary["deletedIds"] == [b["id"]]


def test_other_owner_cannot_touch_nodes(client: TestClient, owner_id, make_headers):
    mine = _create_folder(client, make_headers(owner_id), "private")
    other = make_headers(owner_id + 500000)

    assert client.get(f"{API}/folders/{mine['id']}", headers=other).status_code == 403
    assert client.delete(f"{API}/nodes/{mine['id']}", headers=other).status_code == 403
    resp = client.post(f"{API}/folders", json={"name": "x", "parentId": mine["id"]}, headers=other)
    assert resp.status_code == 404

"""节点存储原语测试：批量查询、路径批量改写与删除。"""

from app.packages.drive.crud.fs_node import SegmentsPatch, fs_node_crud
from app.packages.drive.services.trash_service import trash_service
from app.packages.drive.services.tree_service import tree_service


def test_find_by_ids_includes_trashed_nodes(db, owner_id):
    a = tree_service.create_folder(db, owner_id=owner_id, name="a")
    b = tree_service.create_folder(db, owner_id=owner_id, name="b")
    trash_service.soft_delete(db, owner_id=owner_id, node_id=b.id)

    found = fs_node_crud.find_by_ids(db, [a.id, b.id, a.id])
    assert sorted(node.id for node in found) == sorted([a.id, b.id])
    assert fs_node_crud.deleted_ids_among(db, [a.id, b.id]) == {b.id}
    assert fs_node_crud.find_by_ids(db, []) == []


def test_bulk_update_rebuilds_paths_that_drifted(db, owner_id):
    top = tree_service.create_folder(db, owner_id=owner_id, name="top")
    child = tree_service.create_folder(db, owner_id=owner_id, name="child", parent_id=top.id)
    fs_node_crud.update_fields(db, child, {"path": "/stale/child"}, auto_commit=True)

    fs_node_crud.update_fields(db, top, {"name": "Renamed", "path": "/renamed"})
    modified = fs_node_crud.bulk_update_paths_under_prefix(
        db,
        [child],
        old_prefix="/top",
        new_prefix="/renamed",
        patch=SegmentsPatch(strip=1, head=[{"id": top.id, "name": "Renamed"}]),
    )
    db.commit()

    assert modified == 1
    assert child.path == "/renamed/child"
    assert child.path_segments == [{"id": top.id, "name": "Renamed"}]


def test_delete_one_removes_row(db, owner_id):
    f = tree_service.create_file(db, owner_id=owner_id, name="gone.txt")
    file_id = f.id

    fs_node_crud.delete_one(db, f)
    db.commit()

    assert fs_node_crud.find_by_id(db, file_id) is None

"""端到端场景：创建、重名、改名级联、软删除推导与彻底删除。"""

import pytest

from app.packages.drive.core.exceptions import NotFoundException
from app.packages.drive.services.trash_service import trash_service
from app.packages.drive.services.tree_service import tree_service


def test_docs_work_archive_scenario(db, owner_id):
    docs = tree_service.create_folder(db, owner_id=owner_id, name="Docs")
    assert docs.path == "/docs"
    assert docs.path_segments == []

    work = tree_service.create_folder(db, owner_id=owner_id, name="Work", parent_id=docs.id)
    assert work.path == "/docs/work"
    assert work.path_segments == [{"id": docs.id, "name": "Docs"}]

    again = tree_service.create_folder(db, owner_id=owner_id, name="Docs")
    assert again.name == "Docs (2)"

    tree_service.rename(db, owner_id=owner_id, node_id=docs.id, new_name="Archive")
    assert work.path == "/archive/work"
    assert work.path_segments == [{"id": docs.id, "name": "Archive"}]
    assert again.path == "/docs-(2)"

    trash_service.soft_delete(db, owner_id=owner_id, node_id=docs.id)
    assert trash_service.check_deleted_ancestor(db, owner_id=owner_id, node_id=work.id) is True
    assert tree_service.get_node(db, owner_id=owner_id, node_id=work.id).deleted_at is None


def test_restoring_ancestor_clears_effective_trash_without_touching_child(db, owner_id):
    parent = tree_service.create_folder(db, owner_id=owner_id, name="parent")
    child = tree_service.create_file(db, owner_id=owner_id, name="child.txt", parent_id=parent.id)
    child_updated = child.update_time

    trash_service.soft_delete(db, owner_id=owner_id, node_id=parent.id)
    assert trash_service.is_effectively_trashed(db, child) is True

    trash_service.restore(db, owner_id=owner_id, node_id=parent.id)
    assert trash_service.is_effectively_trashed(db, child) is False
    assert child.update_time == child_updated


def test_permanent_delete_makes_descendants_unreachable(db, owner_id):
    top = tree_service.create_folder(db, owner_id=owner_id, name="top")
    mid = tree_service.create_folder(db, owner_id=owner_id, name="mid", parent_id=top.id)
    leaf = tree_service.create_file(db, owner_id=owner_id, name="leaf.txt", parent_id=mid.id)
    ids = [top.id, mid.id, leaf.id]

    trash_service.permanent_delete(db, owner_id=owner_id, node_id=top.id)

    for node_id in ids:
        with pytest.raises(NotFoundException):
            tree_service.get_node(db, owner_id=owner_id, node_id=node_id)

"""Tests for document models."""

from datetime import UTC, datetime

from content_stack.models.collection import BranchInfo, Collection
from content_stack.models.content import Content, ContentStatus, Element, ElementType
from content_stack.models.lock import LockInfo, LockSource, LockState
from content_stack.models.release import BatchFailure, BatchResult, PurgeSummary
from content_stack.models.version import ContentVersion, VersionSnapshot, version_id


def test_document_defaults():
    """Verify DocumentBase fills id and UTC timestamps."""
    content = Content(collection_id="col-1")
    assert content.id
    assert content.created_at.tzinfo is UTC
    assert content.deleted_at is None
    assert content.current_version == 1
    assert content.status == ContentStatus.DRAFT


def test_version_id_is_derived_from_number():
    """Verify version id is derived from number."""
    assert version_id("content-1", 3) == "content-1:3"


def test_snapshot_excludes_element_locks_and_copies_metadata():
    """Verify snapshot excludes element locks and copies metadata."""
    content = Content(
        id="content-1",
        collection_id="col-1",
        title="Doc",
        metadata={"tags": ["a"]},
        elements=[
            Element(id="el-1", content_id="content-1", lock=LockState(locked_by="u1")),
        ],
    )

    snapshot = VersionSnapshot.from_content(content)
    content.metadata["tags"].append("b")

    assert snapshot.metadata == {"tags": ["a"]}
    assert "lock" not in snapshot.elements[0]
    assert "parent_id" not in snapshot.elements[0]
    assert snapshot.elements[0]["type"] == "text"
    assert snapshot.status == "draft"


def test_content_version_defaults():
    """Verify content version defaults."""
    entry = ContentVersion(content_id="content-1", version_number=1)
    assert entry.branch is None
    assert entry.is_branch_end is False
    assert entry.snapshot == VersionSnapshot()


def test_collection_branch_helpers():
    """Verify collection branch helpers."""
    collection = Collection(
        name="Articles",
        branches=[BranchInfo(name="Basis"), BranchInfo(name="v1")],
    )
    assert collection.branch_names == ["Basis", "v1"]
    assert collection.find_branch("v1").name == "v1"
    assert collection.find_branch("v2") is None


def test_only_wrappers_have_children():
    """Verify only wrappers have children."""
    assert ElementType.WRAPPER.can_have_children is True
    assert ElementType.TEXT.can_have_children is False


def test_content_find_element():
    """Verify find_element looks elements up by id."""
    content = Content(
        collection_id="col-1",
        elements=[Element(id="el-1", content_id="c"), Element(id="el-2", content_id="c")],
    )
    assert content.find_element("el-2").id == "el-2"
    assert content.find_element("nope") is None


def test_lock_info_from_state():
    """Verify LockInfo.from_state copies the state and source."""
    locked_at = datetime(2026, 1, 1, tzinfo=UTC)
    state = LockState(locked_by="u1", locked_at=locked_at, reason="review")

    info = LockInfo.from_state(state, LockSource.COLLECTION)

    assert info.is_locked is True
    assert (info.locked_by, info.locked_at, info.reason) == ("u1", locked_at, "review")
    assert info.source == "collection"


def test_batch_result_ok():
    """Verify BatchResult.ok is False on failures or skips."""
    assert BatchResult(total=1, succeeded=["a"]).ok is True
    failed = BatchResult(failures=[BatchFailure(item_id="a", error_type="X", message="m")])
    assert failed.ok is False
    assert BatchResult(skipped=["a"]).ok is False


def test_purge_summary_deleted_count():
    """Verify PurgeSummary.deleted_count mirrors affected."""
    summary = PurgeSummary(collection_id="col-1", result=BatchResult(affected=8))
    assert summary.deleted_count == 8

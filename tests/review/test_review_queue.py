# Tests for ReviewQueue
# =====================

import pytest

from wordroot.dictionary import RootDictionary
from wordroot.errors import (
    DuplicateAbbreviation,
    InvalidTaskState,
    NotFound,
    PartialMatchApproval,
)
from wordroot.models import TaskFilter, TaskState, TaskStatus, TaskType
from wordroot.review import ReviewQueue


@pytest.fixture
def queue(db):
    return ReviewQueue(db)


@pytest.fixture
def root_request(queue):
    """An open ROOT_REQUEST for the span 税费."""
    return queue.enqueue_root_request("税费", {"requested_name": "订单税费"})


@pytest.fixture
def field_task(db, queue):
    """A fully matched field and its FIELD_UPDATE task."""
    root = RootDictionary(db).insert({"cn_name": "订单", "en_abbr": "order"})
    field = db.insert_field("订单", "order", [root.id])
    return queue.enqueue_field_update(field)


class TestEnqueue:
    """Task creation and listing."""

    def test_new_task_is_created_and_unread(self, queue, root_request):
        """Test the initial state."""
        assert root_request.state == TaskState.CREATED
        assert root_request.is_read is False
        assert root_request.payload["unmatched_span"] == "税费"
        assert queue.unread_count() == 1

    def test_list_ordered_oldest_first(self, queue):
        """Test FIFO ordering."""
        first = queue.enqueue(TaskType.ROOT_REQUEST, {"n": 1})
        second = queue.enqueue(TaskType.FIELD_UPDATE, {"n": 2})
        third = queue.enqueue(TaskType.ROOT_REQUEST, {"n": 3})
        assert [t.id for t in queue.list()] == [first.id, second.id, third.id]

    def test_list_filters(self, queue):
        """Test filtering by type, read flag and status."""
        a = queue.enqueue(TaskType.ROOT_REQUEST, {})
        b = queue.enqueue(TaskType.FIELD_UPDATE, {})
        queue.mark_read(a.id)

        assert [t.id for t in queue.list(TaskFilter(task_type=TaskType.FIELD_UPDATE))] == [b.id]
        assert [t.id for t in queue.list(TaskFilter(is_read=True))] == [a.id]
        assert [t.id for t in queue.list(TaskFilter(status=TaskStatus.OPEN))] == [a.id, b.id]
        assert len(queue.list(TaskFilter(limit=1))) == 1

    def test_root_requests_deduplicated(self, queue, root_request):
        """Test that an open request for the same span is reused."""
        again = queue.enqueue_root_request(" 税费 ", {"requested_name": "税费金额"})
        assert again.id == root_request.id
        assert queue.unread_count() == 1

    def test_dedupe_disabled(self, db):
        """Test that each request is a new task without dedupe."""
        queue = ReviewQueue(db, dedupe_root_requests=False)
        first = queue.enqueue_root_request("税费", {})
        second = queue.enqueue_root_request("税费", {})
        assert first.id != second.id
        assert queue.unread_count() == 2

    def test_get_missing(self, queue):
        """Test that a missing task raises NotFound."""
        with pytest.raises(NotFound):
            queue.get(404)


class TestMarkRead:
    """Read/unread transitions."""

    def test_mark_read(self, queue, root_request):
        """Test CREATED -> READ."""
        task = queue.mark_read(root_request.id)
        assert task.state == TaskState.READ
        assert queue.unread_count() == 0

    def test_mark_read_twice_is_noop(self, queue, root_request):
        """Test that marking a read task again changes nothing."""
        queue.mark_read(root_request.id)
        task = queue.mark_read(root_request.id)
        assert task.state == TaskState.READ

    def test_mark_read_resolved_is_noop(self, queue, root_request):
        """Test that a RESOLVED task stays RESOLVED."""
        queue.dismiss(root_request.id)
        task = queue.mark_read(root_request.id)
        assert task.state == TaskState.RESOLVED

    def test_mark_read_missing(self, queue):
        """Test that marking a missing task raises NotFound."""
        with pytest.raises(NotFound):
            queue.mark_read(12345)


class TestResolveAsNewRoot:
    """ROOT_REQUEST resolution."""

    def test_creates_root_and_resolves(self, db, queue, root_request):
        """Test that the root is inserted and the task resolved together."""
        root = queue.resolve_as_new_root(root_request.id, {"en_abbr": "tax"}, resolved_by="alice")

        assert root.cn_name == "税费"
        assert root.en_abbr == "tax"
        task = queue.get(root_request.id)
        assert task.state == TaskState.RESOLVED
        assert task.resolution == {"action": "create_root", "root_id": root.id, "resolved_by": "alice"}
        assert task.resolved_at is not None
        assert queue.unread_count() == 0

    def test_resolving_twice_fails(self, queue, root_request):
        """Test that a RESOLVED task cannot be resolved again."""
        queue.resolve_as_new_root(root_request.id, {"en_abbr": "tax"})
        with pytest.raises(InvalidTaskState) as exc_info:
            queue.resolve_as_new_root(root_request.id, {"en_abbr": "tax2"})
        assert exc_info.value.state == "RESOLVED"

    def test_duplicate_abbreviation_leaves_state(self, db, queue, root_request):
        """Test that a failed insert leaves both task and dictionary unchanged."""
        RootDictionary(db).insert({"cn_name": "税收", "en_abbr": "tax"})

        with pytest.raises(DuplicateAbbreviation):
            queue.resolve_as_new_root(root_request.id, {"en_abbr": "TAX"})

        assert queue.get(root_request.id).state == TaskState.CREATED
        assert [r.en_abbr for r in RootDictionary(db).all_roots()] == ["tax"]

    def test_wrong_task_type(self, queue, field_task):
        """Test that a FIELD_UPDATE cannot be resolved as a new root."""
        with pytest.raises(InvalidTaskState):
            queue.resolve_as_new_root(field_task.id, {"en_abbr": "x", "cn_name": "x"})

    def test_new_request_after_resolution(self, queue, root_request):
        """Test that dedupe only applies to open tasks."""
        queue.resolve_as_new_root(root_request.id, {"en_abbr": "tax"})
        again = queue.enqueue_root_request("税费", {})
        assert again.id != root_request.id


class TestResolveAsApprovedField:
    """FIELD_UPDATE resolution."""

    def test_approves_field(self, db, queue, field_task):
        """Test that approval flips is_standard and resolves the task."""
        field = queue.resolve_as_approved_field(field_task.id)
        assert field.is_standard is True
        assert db.get_field(field.id).is_standard is True
        assert queue.get(field_task.id).state == TaskState.RESOLVED

    def test_wrong_task_type(self, queue, root_request):
        """Test that a ROOT_REQUEST cannot be approved as a field."""
        with pytest.raises(InvalidTaskState):
            queue.resolve_as_approved_field(root_request.id)

    def test_missing_field(self, db, queue, field_task):
        """Test that approval of a deleted field raises NotFound."""
        db.delete_field(field_task.payload["field_id"])
        with pytest.raises(NotFound):
            queue.resolve_as_approved_field(field_task.id)
        assert queue.get(field_task.id).status == TaskStatus.OPEN

    def test_partial_match_rejected(self, db, queue):
        """Test that partially matched fields need their roots first."""
        field = db.insert_field("订单税费", "order_[税费]", [], fully_matched=False)
        task = queue.enqueue_field_update(field)

        with pytest.raises(PartialMatchApproval):
            queue.resolve_as_approved_field(task.id)
        assert db.get_field(field.id).is_standard is False
        assert queue.get(task.id).status == TaskStatus.OPEN

    def test_partial_match_allowed_by_policy(self, db):
        """Test that the policy flag permits partial approval."""
        queue = ReviewQueue(db, allow_partial_approval=True)
        field = db.insert_field("订单税费", "order_[税费]", [], fully_matched=False)
        task = queue.enqueue_field_update(field)
        assert queue.resolve_as_approved_field(task.id).is_standard is True


class TestDismiss:
    """Resolving without action."""

    def test_dismiss(self, queue, root_request):
        """Test that dismiss records the reason."""
        task = queue.dismiss(root_request.id, reason="typo", resolved_by="bob")
        assert task.state == TaskState.RESOLVED
        assert task.resolution["action"] == "dismiss"
        assert task.resolution["reason"] == "typo"

    def test_dismiss_resolved(self, queue, root_request):
        """Test that a resolved task cannot be dismissed."""
        queue.dismiss(root_request.id)
        with pytest.raises(InvalidTaskState):
            queue.dismiss(root_request.id)

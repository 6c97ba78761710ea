# Tests for NamingService
# =======================

import pytest

from wordroot.errors import (
    DuplicateFieldName,
    InvalidTaskState,
    NotFound,
    PartialMatchApproval,
    RootInUse,
)
from wordroot.models import TaskFilter, TaskState, TaskType
from wordroot.naming import TaskAction


class TestResolveFieldName:
    """Description → field name scenarios."""

    def test_fully_matched_creates_no_task(self, seeded_service):
        """Test 订单金额 → order_amt with no task."""
        suggestion = seeded_service.resolve_field_name("订单金额")

        assert [s.span for s in suggestion.segments] == ["订单", "金额"]
        assert all(s.matched for s in suggestion.segments)
        assert suggestion.result.field_en_name == "order_amt"
        assert suggestion.result.fully_matched is True
        assert suggestion.task_ids == ()
        assert seeded_service.unread_count() == 0

    def test_unmatched_span_enqueues_root_request(self, seeded_service):
        """Test 订单税费 → ROOT_REQUEST for 税费 and one more unread task."""
        before = seeded_service.unread_count()
        suggestion = seeded_service.resolve_field_name("订单税费", requested_by="dev1")

        assert suggestion.result.fully_matched is False
        assert suggestion.result.field_en_name == "order_[税费]"
        assert len(suggestion.task_ids) == 1
        assert seeded_service.unread_count() == before + 1

        task = seeded_service.get_task(suggestion.task_ids[0])
        assert task.task_type == TaskType.ROOT_REQUEST
        assert task.payload["unmatched_span"] == "税费"
        assert task.payload["requested_name"] == "订单税费"
        assert task.payload["requested_by"] == "dev1"
        assert task.payload["proposed_composition_ids"] == list(suggestion.result.composition_ids)
        assert "similar_roots" in task.payload

    def test_resolving_request_completes_name(self, seeded_service):
        """Test that creating the tax root makes 订单税费 compose to order_tax."""
        task_id = seeded_service.resolve_field_name("订单税费").task_ids[0]

        root = seeded_service.resolve_task(task_id, TaskAction.CREATE_ROOT, root_fields={"en_abbr": "tax"})
        assert root.cn_name == "税费"
        assert seeded_service.get_task(task_id).state == TaskState.RESOLVED

        suggestion = seeded_service.resolve_field_name("订单税费")
        assert suggestion.result.fully_matched is True
        assert suggestion.result.field_en_name == "order_tax"
        assert suggestion.task_ids == ()

    def test_repeat_request_is_deduplicated(self, seeded_service):
        """Test that asking twice does not queue a second task for the span."""
        first = seeded_service.resolve_field_name("订单税费")
        second = seeded_service.resolve_field_name("税费金额")
        assert first.task_ids == second.task_ids
        assert seeded_service.unread_count() == 1

    def test_blank_description(self, seeded_service):
        """Test that an empty description is rejected."""
        with pytest.raises(ValueError):
            seeded_service.resolve_field_name("   ")

    def test_separator_only_description(self, seeded_service):
        """Test that punctuation alone yields neither a name nor a stored field."""
        with pytest.raises(ValueError):
            seeded_service.resolve_field_name("，、！")
        with pytest.raises(ValueError):
            seeded_service.submit_field("，、！")

        assert seeded_service.list_fields() == []
        assert seeded_service.unread_count() == 0

    def test_settings_apply_to_next_request(self, seeded_service, settings):
        """Test that composition settings are read per call."""
        settings.update_setting("composition", "placeholder_format", "<{span}>")
        settings.update_setting("composition", "separator", "-")
        suggestion = seeded_service.resolve_field_name("订单税费")
        assert suggestion.result.field_en_name == "order-<税费>"

    def test_to_dict(self, seeded_service):
        """Test the serialized suggestion."""
        data = seeded_service.resolve_field_name("订单金额").to_dict()
        assert data["field_en_name"] == "order_amt"
        assert data["fully_matched"] is True
        assert [s["span"] for s in data["segments"]] == ["订单", "金额"]
        assert data["segments"][0]["candidates"][0]["en_abbr"] == "order"


class TestSubmitField:
    """Field submission and duplicate-name policy."""

    def test_submit_creates_non_standard_field(self, seeded_service):
        """Test that submission stores the field and queues approval."""
        submission = seeded_service.submit_field("订单金额", associated_terms=["订单总额"])

        assert submission.created is True
        field = submission.field
        assert field.field_en_name == "order_amt"
        assert field.is_standard is False
        assert field.fully_matched is True
        assert field.data_type == "decimal"
        assert field.associated_terms == frozenset({"订单总额"})

        task = seeded_service.get_task(submission.task_id)
        assert task.task_type == TaskType.FIELD_UPDATE
        assert task.payload["field_id"] == field.id

    def test_resubmit_returns_existing(self, seeded_service):
        """Test that the same description is not stored twice."""
        first = seeded_service.submit_field("订单金额")
        second = seeded_service.submit_field("订单金额")
        assert second.created is False
        assert second.field.id == first.field.id
        assert len(seeded_service.list_tasks(TaskFilter(task_type=TaskType.FIELD_UPDATE))) == 1

    def test_duplicate_name_versioned(self, seeded_service):
        """Test the default policy appends _v2, _v3."""
        seeded_service.submit_field("订单金额")
        second = seeded_service.submit_field("订单 金额")
        third = seeded_service.submit_field("订单价格")
        assert second.field.field_en_name == "order_amt_v2"
        assert third.field.field_en_name == "order_amt_v3"

    def test_duplicate_name_rejected(self, seeded_service, settings):
        """Test the reject policy."""
        settings.update_setting("composition", "duplicate_field_names", "reject")
        first = seeded_service.submit_field("订单金额")
        with pytest.raises(DuplicateFieldName) as exc_info:
            seeded_service.submit_field("订单价格")
        assert exc_info.value.existing_id == first.field.id

    def test_duplicate_name_allowed(self, seeded_service, settings):
        """Test the allow policy."""
        settings.update_setting("composition", "duplicate_field_names", "allow")
        seeded_service.submit_field("订单金额")
        second = seeded_service.submit_field("订单价格")
        assert second.field.field_en_name == "order_amt"

    def test_partial_field_needs_roots_before_approval(self, seeded_service):
        """Test the full partial-match workflow."""
        submission = seeded_service.submit_field("订单税费")
        assert submission.field.fully_matched is False
        assert submission.field.composition_ids == [1]

        with pytest.raises(PartialMatchApproval):
            seeded_service.resolve_task(submission.task_id, TaskAction.APPROVE_FIELD)

        root_task = submission.suggestion.task_ids[0]
        seeded_service.resolve_task(root_task, TaskAction.CREATE_ROOT, root_fields={"en_abbr": "tax"})

        updated = seeded_service.update_field(submission.field.id, field_cn_name="订单税费")
        assert updated.field_en_name == "order_tax"
        assert updated.fully_matched is True

        field_tasks = seeded_service.list_tasks(
            TaskFilter(task_type=TaskType.FIELD_UPDATE, is_read=False)
        )
        approved = seeded_service.resolve_task(field_tasks[-1].id, TaskAction.APPROVE_FIELD)
        assert approved.is_standard is True


class TestFieldMaintenance:
    """Field edits, lookups and deletion."""

    def test_update_with_explicit_chain(self, seeded_service):
        """Test that an explicit composition chain recomposes the name."""
        field = seeded_service.submit_field("订单金额").field
        updated = seeded_service.update_field(field.id, composition_ids=[2, 1])
        assert updated.field_en_name == "amt_order"
        assert updated.composition_ids == [2, 1]
        assert updated.is_standard is False

    def test_update_resets_standard(self, seeded_service):
        """Test that editing an approved field sends it back for review."""
        submission = seeded_service.submit_field("订单金额")
        seeded_service.resolve_task(submission.task_id, TaskAction.APPROVE_FIELD)

        updated = seeded_service.update_field(submission.field.id, data_type="numeric")
        assert updated.is_standard is False
        assert updated.data_type == "numeric"
        assert updated.field_en_name == "order_amt"

    def test_list_fields(self, seeded_service):
        """Test browsing the registry, newest first, filtered by approval."""
        first = seeded_service.submit_field("订单金额")
        second = seeded_service.submit_field("金额订单")
        seeded_service.resolve_task(first.task_id, TaskAction.APPROVE_FIELD)

        assert [f.id for f in seeded_service.list_fields()] == [second.field.id, first.field.id]
        assert [f.id for f in seeded_service.list_fields(is_standard=True)] == [first.field.id]
        assert [f.id for f in seeded_service.list_fields(is_standard=False)] == [second.field.id]

    def test_update_missing_root(self, seeded_service):
        """Test that a chain with an unknown root is rejected."""
        field = seeded_service.submit_field("订单金额").field
        with pytest.raises(NotFound):
            seeded_service.update_field(field.id, composition_ids=[1, 99])

    def test_update_missing_field(self, seeded_service):
        with pytest.raises(NotFound):
            seeded_service.update_field(404, data_type="int")

    def test_field_details(self, seeded_service):
        """Test that details list the roots in chain order."""
        field = seeded_service.submit_field("金额订单").field
        details = seeded_service.get_field_details(field.id)
        assert [r.en_abbr for r in details.roots] == ["amt", "order"]
        assert details.to_dict()["field"]["field_en_name"] == "amt_order"

    def test_delete_field(self, seeded_service):
        """Test that a deleted field is gone and its roots become deletable."""
        field = seeded_service.submit_field("订单金额").field
        with pytest.raises(RootInUse):
            seeded_service.delete_root(1)

        seeded_service.delete_field(field.id)
        with pytest.raises(NotFound):
            seeded_service.get_field(field.id)
        seeded_service.delete_root(1)

    def test_search_fields_substring(self, seeded_service):
        """Test substring search over names and synonyms."""
        field = seeded_service.submit_field("订单金额", associated_terms=["下单金额"]).field
        assert [f.id for f in seeded_service.search_fields("订单")] == [field.id]
        assert [f.id for f in seeded_service.search_fields("下单")] == [field.id]

    def test_search_fields_similarity_fallback(self, seeded_service):
        """Test that fields are found by similarity when no substring matches."""
        field = seeded_service.submit_field("客户名称").field
        results = seeded_service.search_fields("客户名字")
        assert [f.id for f in results] == [field.id]

    def test_search_similar_roots(self, seeded_service):
        """Test the similar-root search pass-through."""
        seeded_service.create_root({"cn_name": "订单号", "en_abbr": "order_no"})
        results = seeded_service.search_similar_roots("订单")
        assert [r.root.en_abbr for r in results] == ["order", "order_no"]


class TestTaskActions:
    """resolve_task dispatch."""

    def test_dismiss(self, seeded_service):
        """Test dismissing with a reason."""
        task_id = seeded_service.resolve_field_name("订单税费").task_ids[0]
        task = seeded_service.resolve_task(task_id, "dismiss", reason="not a real term")
        assert task.state == TaskState.RESOLVED
        assert task.resolution["reason"] == "not a real term"

    def test_create_root_requires_fields(self, seeded_service):
        """Test that CREATE_ROOT without attributes is rejected."""
        task_id = seeded_service.resolve_field_name("订单税费").task_ids[0]
        with pytest.raises(ValueError):
            seeded_service.resolve_task(task_id, TaskAction.CREATE_ROOT)

    def test_resolve_resolved_task(self, seeded_service):
        """Test that a resolved task cannot be resolved again."""
        task_id = seeded_service.resolve_field_name("订单税费").task_ids[0]
        seeded_service.resolve_task(task_id, TaskAction.DISMISS)
        with pytest.raises(InvalidTaskState):
            seeded_service.resolve_task(task_id, TaskAction.CREATE_ROOT, root_fields={"en_abbr": "tax"})

    def test_mark_read_updates_unread_count(self, seeded_service):
        """Test the unread badge count."""
        task_id = seeded_service.resolve_field_name("订单税费").task_ids[0]
        assert seeded_service.unread_count() == 1
        seeded_service.mark_task_read(task_id)
        assert seeded_service.unread_count() == 0

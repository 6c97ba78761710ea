# WordRoot Naming Service
# =======================
"""
Produced interface of the naming engine.

Resolution Flow:
1. Take a dictionary snapshot for the request
2. Matcher segments the description and ranks candidates
3. Composer builds the English field name
4. Each unmatched span becomes a ROOT_REQUEST task for administrators

``resolve_field_name`` only suggests; ``submit_field`` stores the field as
non-standard and asks for approval with a FIELD_UPDATE task.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..dictionary import (
    Composer,
    CompositionResult,
    Matcher,
    MatchSegment,
    RootDictionary,
    SimilarRoot,
    get_similarity,
)
from ..dictionary.root_dictionary import RootInput
from ..errors import DuplicateFieldName, NotFound
from ..models import (
    NotificationTask,
    StandardField,
    TaskFilter,
    WordRoot,
)
from ..review import ReviewQueue
from ..settings import SettingsService, get_settings_service
from ..storage import NamingDB

logger = logging.getLogger(__name__)

SIMILAR_ROOT_HINTS = 5


class TaskAction(str, Enum):
    """Administrator actions that resolve a task."""
    CREATE_ROOT = "create_root"
    APPROVE_FIELD = "approve_field"
    DISMISS = "dismiss"


class DuplicateNamePolicy(str, Enum):
    """What to do when a composed field_en_name already exists."""
    VERSION = "version"
    REJECT = "reject"
    ALLOW = "allow"


@dataclass(frozen=True)
class FieldNameSuggestion:
    """Result of resolving a description into a field name."""
    description: str
    result: CompositionResult
    segments: Tuple[MatchSegment, ...] = field(default_factory=tuple)
    task_ids: Tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "description": self.description,
            **self.result.to_dict(),
            "segments": [s.to_dict() for s in self.segments],
            "task_ids": list(self.task_ids),
        }


@dataclass(frozen=True)
class FieldSubmission:
    """Outcome of submitting a field for standardization."""
    field: StandardField
    suggestion: FieldNameSuggestion
    created: bool
    task_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "field": self.field.model_dump(mode="json"),
            "created": self.created,
            "task_id": self.task_id,
            "root_request_ids": list(self.suggestion.task_ids),
            "unmatched_spans": list(self.suggestion.result.unmatched_spans),
        }


@dataclass(frozen=True)
class FieldDetails:
    """A field with its composition chain resolved to roots, in order."""
    field: StandardField
    roots: Tuple[WordRoot, ...]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "field": self.field.model_dump(mode="json"),
            "roots": [r.model_dump(mode="json") for r in self.roots],
        }


class NamingService:
    """
    Field naming service wiring the dictionary, matcher, composer and review queue.

    Settings are read on every call, so changes made through the settings
    service apply to the next request.
    """

    def __init__(self, db_path: Optional[str] = None,
                 settings: Optional[SettingsService] = None):
        """
        Initialize the service.

        Args:
            db_path: Naming database path (default: WORDROOT_DB_PATH or DATA_DIR/wordroot.db)
            settings: Settings service (default: global singleton)
        """
        self.db = NamingDB(db_path)
        self.settings = settings or get_settings_service()
        self.dictionary = RootDictionary(self.db)

    # ==================== COMPONENTS ====================

    def _similarity(self):
        return get_similarity(self.settings.get("matching", "similarity_method", "trigram"))

    def _matcher(self) -> Matcher:
        matching = self.settings.get_category_values("matching")
        return Matcher(
            self.dictionary.snapshot(),
            similarity=get_similarity(matching["similarity_method"]),
            threshold=matching["fuzzy_threshold"],
            max_candidates=matching["max_candidates"],
            ambiguity_margin=matching["ambiguity_margin"],
        )

    def _composer(self) -> Composer:
        composition = self.settings.get_category_values("composition")
        return Composer(
            separator=composition["separator"],
            placeholder_format=composition["placeholder_format"],
        )

    @property
    def queue(self) -> ReviewQueue:
        review = self.settings.get_category_values("review")
        return ReviewQueue(
            self.db,
            dedupe_root_requests=review["dedupe_root_requests"],
            allow_partial_approval=review["allow_partial_approval"],
        )

    # ==================== RESOLUTION ====================

    def resolve_field_name(self, description: str,
                           requested_by: Optional[str] = None) -> FieldNameSuggestion:
        """
        Suggest a standardized English name for a Chinese field description.

        Unmatched spans are queued as ROOT_REQUEST tasks; everything else is
        read-only.

        Raises:
            ValueError: If the description is blank or contains nothing but separators.
        """
        if not description or not description.strip():
            raise ValueError("Field description must not be empty")
        description = description.strip()

        segments = self._matcher().match(description)
        if not segments:
            raise ValueError(f"Field description has no nameable text: {description!r}")
        result = self._composer().compose(segments)

        task_ids = []
        if result.unmatched_spans:
            task_ids = self._request_roots(description, result, requested_by)

        logger.info(
            f"Resolved '{description}' -> {result.field_en_name} "
            f"(fully_matched={result.fully_matched}, root requests={task_ids})"
        )
        return FieldNameSuggestion(
            description=description,
            result=result,
            segments=tuple(segments),
            task_ids=tuple(task_ids),
        )

    def _request_roots(self, description: str, result: CompositionResult,
                       requested_by: Optional[str]) -> List[int]:
        """Enqueue one ROOT_REQUEST per distinct unmatched span."""
        similarity = self._similarity()
        spans = list(dict.fromkeys(result.unmatched_spans))
        hints = {
            span: self.dictionary.search_similar(span, limit=SIMILAR_ROOT_HINTS, similarity=similarity)
            for span in spans
        }

        queue = self.queue
        task_ids = []
        with self.db.transaction() as conn:
            for span in spans:
                task = queue.enqueue_root_request(span, {
                    "requested_name": description,
                    "similar_roots": [h.to_dict() for h in hints[span]],
                    "proposed_name": result.field_en_name,
                    "proposed_composition_ids": list(result.composition_ids),
                    "requested_by": requested_by,
                }, conn=conn)
                task_ids.append(task.id)
        return task_ids

    # ==================== FIELDS ====================

    def submit_field(self, description: str, associated_terms: Iterable[str] = (),
                     data_type: Optional[str] = None,
                     requested_by: Optional[str] = None) -> FieldSubmission:
        """
        Compose a field from its description and store it as non-standard.

        Submitting the same description again returns the stored field
        without queueing another approval.

        Raises:
            ValueError: If the description is blank.
            DuplicateFieldName: If the name exists and the policy is ``reject``.
        """
        suggestion = self.resolve_field_name(description, requested_by)
        result = suggestion.result

        with self.db.transaction() as conn:
            existing = self.db.find_fields_by_base_name(result.field_en_name, conn=conn)
            for candidate in existing:
                if (candidate.field_cn_name == suggestion.description
                        and tuple(candidate.composition_ids) == result.composition_ids):
                    logger.info(f"Field '{suggestion.description}' already stored as {candidate.id}")
                    return FieldSubmission(field=candidate, suggestion=suggestion, created=False)

            name = self._assign_name(result.field_en_name, existing)
            stored = self.db.insert_field(
                field_cn_name=suggestion.description,
                field_en_name=name,
                composition_ids=result.composition_ids,
                data_type=data_type or result.data_type,
                fully_matched=result.fully_matched,
                associated_terms=associated_terms,
                conn=conn,
            )
            task = self.queue.enqueue_field_update(
                stored, {"change": "create", "requested_by": requested_by}, conn=conn
            )

        logger.info(f"Submitted field {stored.id}: {stored.field_cn_name} -> {stored.field_en_name}")
        return FieldSubmission(field=stored, suggestion=suggestion, created=True, task_id=task.id)

    def update_field(
        self,
        field_id: int,
        field_cn_name: Optional[str] = None,
        composition_ids: Optional[Sequence[int]] = None,
        data_type: Optional[str] = None,
        associated_terms: Optional[Iterable[str]] = None,
        requested_by: Optional[str] = None,
    ) -> StandardField:
        """
        Edit a field, recompose its name and send it back for approval.

        An explicit ``composition_ids`` chain wins over recomposing from
        ``field_cn_name``. Any edit resets ``is_standard``.

        Raises:
            NotFound: If the field or a chain root does not exist.
            DuplicateFieldName: If the new name exists and the policy is ``reject``.
        """
        current = self.db.get_field(field_id)
        if current is None:
            raise NotFound("field", field_id)

        updates: Dict[str, Any] = {"is_standard": False}
        if field_cn_name is not None:
            if not field_cn_name.strip():
                raise ValueError("Field description must not be empty")
            updates["field_cn_name"] = field_cn_name.strip()
        if data_type is not None:
            updates["data_type"] = data_type
        if associated_terms is not None:
            updates["associated_terms"] = associated_terms

        result = None
        if composition_ids is not None:
            roots = self.db.get_roots(composition_ids)
            missing = [root_id for root_id in composition_ids if root_id not in roots]
            if missing:
                raise NotFound("word root", missing[0])
            result = self._composer().compose_ids([roots[root_id] for root_id in composition_ids])
        elif field_cn_name is not None:
            result = self.resolve_field_name(field_cn_name, requested_by).result

        with self.db.transaction() as conn:
            if result is not None:
                existing = [
                    f for f in self.db.find_fields_by_base_name(result.field_en_name, conn=conn)
                    if f.id != field_id
                ]
                if self._is_version_of(current.field_en_name, result.field_en_name):
                    name = current.field_en_name
                else:
                    name = self._assign_name(result.field_en_name, existing)
                updates.update(
                    field_en_name=name,
                    composition_ids=list(result.composition_ids),
                    fully_matched=result.fully_matched,
                )
                if data_type is None and result.data_type:
                    updates["data_type"] = result.data_type

            updated = self.db.update_field(field_id, conn=conn, **updates)
            self.queue.enqueue_field_update(
                updated, {"change": "update", "requested_by": requested_by}, conn=conn
            )

        logger.info(f"Updated field {field_id}: {updated.field_en_name} (pending approval)")
        return updated

    def delete_field(self, field_id: int) -> None:
        """Raises NotFound if the field does not exist."""
        if not self.db.delete_field(field_id):
            raise NotFound("field", field_id)
        logger.info(f"Deleted field {field_id}")

    def get_field(self, field_id: int) -> StandardField:
        stored = self.db.get_field(field_id)
        if stored is None:
            raise NotFound("field", field_id)
        return stored

    def list_fields(self, is_standard: Optional[bool] = None) -> List[StandardField]:
        """Field registry, newest first; optionally only approved or only pending fields."""
        fields = self.db.list_fields()
        if is_standard is None:
            return fields
        return [f for f in fields if f.is_standard == is_standard]

    def get_field_details(self, field_id: int) -> FieldDetails:
        """Field plus its root chain in composition order."""
        with self.db.connection(None) as conn:
            stored = self.db.get_field(field_id, conn=conn)
            if stored is None:
                raise NotFound("field", field_id)
            roots = self.db.get_roots(stored.composition_ids, conn=conn)
        return FieldDetails(
            field=stored,
            roots=tuple(roots[root_id] for root_id in stored.composition_ids),
        )

    def search_fields(self, query: str, limit: int = 10) -> List[StandardField]:
        """
        Find fields by Chinese name or synonym.

        Substring matches come first; when there are none, fields are ranked
        by similarity above the fuzzy threshold.
        """
        query = (query or "").strip()
        if not query:
            return []

        hits = self.db.search_fields(query, limit=limit)
        if hits:
            return hits

        similarity = self._similarity()
        threshold = self.settings.get("matching", "fuzzy_threshold", 0.3)
        scored = []
        for candidate in self.db.list_fields():
            terms = {candidate.field_cn_name} | candidate.associated_terms
            score = max(similarity.score(query, term) for term in terms)
            if score > 0 and score >= threshold:
                scored.append((score, candidate))

        scored.sort(key=lambda pair: (-pair[0], pair[1].id))
        logger.debug(f"Field search '{query}' fell back to similarity: {len(scored)} hits")
        return [candidate for _, candidate in scored[:limit]]

    def _assign_name(self, base: str, existing: Sequence[StandardField]) -> str:
        """Apply the duplicate-name policy to a composed name."""
        if not existing:
            return base

        policy = DuplicateNamePolicy(
            self.settings.get("composition", "duplicate_field_names", DuplicateNamePolicy.VERSION.value)
        )
        if policy == DuplicateNamePolicy.REJECT:
            logger.warning(f"Rejected duplicate field name {base}")
            raise DuplicateFieldName(base, existing[0].id)
        if policy == DuplicateNamePolicy.ALLOW:
            return base

        highest = 1
        for stored in existing:
            suffix = stored.field_en_name[len(base):]
            match = re.fullmatch(r"_v(\d+)", suffix)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{base}_v{highest + 1}"

    @staticmethod
    def _is_version_of(name: str, base: str) -> bool:
        """True if name is base itself or base_vN."""
        return re.fullmatch(rf"{re.escape(base)}(_v\d+)?", name) is not None

    # ==================== ROOTS ====================

    def create_root(self, root: RootInput) -> WordRoot:
        return self.dictionary.insert(root)

    def create_roots(self, roots: Sequence[RootInput]) -> List[WordRoot]:
        return self.dictionary.insert_many(roots)

    def get_root(self, root_id: int) -> WordRoot:
        return self.dictionary.get(root_id)

    def list_roots(self) -> List[WordRoot]:
        return self.dictionary.all_roots()

    def update_root(self, root_id: int, root: RootInput) -> WordRoot:
        return self.dictionary.update(root_id, root)

    def update_root_synonyms(self, root_id: int, terms: Iterable[str]) -> WordRoot:
        return self.dictionary.update_synonyms(root_id, terms)

    def delete_root(self, root_id: int) -> None:
        self.dictionary.delete(root_id)

    def search_similar_roots(self, query: str, limit: int = 10) -> List[SimilarRoot]:
        """Roots most similar to the query using the configured scorer."""
        if not query or not query.strip():
            return []
        return self.dictionary.search_similar(query.strip(), limit=limit, similarity=self._similarity())

    # ==================== TASKS ====================

    def list_tasks(self, filters: Optional[TaskFilter] = None) -> List[NotificationTask]:
        return self.queue.list(filters)

    def get_task(self, task_id: int) -> NotificationTask:
        return self.queue.get(task_id)

    def mark_task_read(self, task_id: int) -> NotificationTask:
        return self.queue.mark_read(task_id)

    def unread_count(self) -> int:
        return self.queue.unread_count()

    def resolve_task(
        self,
        task_id: int,
        action: Union[TaskAction, str],
        root_fields: Optional[RootInput] = None,
        reason: Optional[str] = None,
        resolved_by: str = "admin",
    ) -> Union[WordRoot, StandardField, NotificationTask]:
        """
        Resolve a task with an administrator action.

        Returns:
            The created WordRoot, the approved StandardField, or the dismissed task

        Raises:
            ValueError: If CREATE_ROOT is requested without root_fields.
            InvalidTaskState: If the task is resolved or the action does not fit its type.
        """
        action = TaskAction(action)
        queue = self.queue

        if action == TaskAction.CREATE_ROOT:
            if root_fields is None:
                raise ValueError("root_fields are required to create a word root")
            return queue.resolve_as_new_root(task_id, root_fields, resolved_by=resolved_by)

        if action == TaskAction.APPROVE_FIELD:
            return queue.resolve_as_approved_field(task_id, resolved_by=resolved_by)

        return queue.dismiss(task_id, reason=reason, resolved_by=resolved_by)


# Singleton instance
_naming_service: Optional[NamingService] = None


def get_naming_service() -> NamingService:
    """Get or create the global naming service instance."""
    global _naming_service
    if _naming_service is None:
        _naming_service = NamingService()
    return _naming_service

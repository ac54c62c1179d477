"""
Shared Firestore access for collections nested under ``users/{uid}``.

Concrete repositories set the collection name, the document model and the
exception type, and add their own query helpers on top.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Generic, Iterable, List, Optional, Tuple, Type, TypeVar

from google.cloud.firestore_v1 import FieldFilter, Transaction

from clipsforge.core.firebase_client import get_firestore_client
from clipsforge.core.repositories.exceptions import (
    ConflictError,
    RepositoryError,
    ValidationError,
)
from clipsforge.core.repositories.models import FirestoreModel

logger = logging.getLogger(__name__)

# Firestore batch limit
MAX_BATCH_SIZE = 500

ModelT = TypeVar("ModelT", bound=FirestoreModel)
Filter = Tuple[str, str, Any]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserScopedRepository(Generic[ModelT]):
    """Base repository for one subcollection of a user document."""

    collection_name: str = ""
    id_field: str = ""
    model: Type[ModelT]
    error_class: Type[RepositoryError] = RepositoryError

    def __init__(self, user_id: str, db: Optional[Any] = None):
        if not user_id or not isinstance(user_id, str) or len(user_id) > 128:
            raise ValidationError("Invalid user_id")

        self.user_id = user_id
        self.db = db if db is not None else get_firestore_client()
        self.user_ref = self.db.collection("users").document(user_id)
        self.collection = self.user_ref.collection(self.collection_name)

    def _fail(self, action: str, exc: Exception) -> RepositoryError:
        logger.error(f"Failed to {action} in {self.collection_name}: {exc}", exc_info=True)
        return self.error_class(f"Failed to {action}: {exc}")

    def _parse(self, doc: Any) -> Optional[ModelT]:
        data = doc.to_dict()
        if not data:
            return None
        try:
            return self.model.from_dict(data)
        except Exception as e:
            logger.warning(f"Skipping malformed {self.collection_name} document {doc.id}: {e}")
            return None

    def get(self, doc_id: str) -> Optional[ModelT]:
        try:
            doc = self.collection.document(doc_id).get()
        except Exception as e:
            raise self._fail(f"get {doc_id}", e) from e
        if not doc.exists:
            return None
        return self._parse(doc)

    def create(self, record: ModelT, transaction: Optional[Transaction] = None) -> ModelT:
        if getattr(record, "user_id", self.user_id) != self.user_id:
            raise ValidationError("user_id mismatch")

        doc_id = getattr(record, self.id_field)
        doc_ref = self.collection.document(doc_id)
        try:
            if transaction is not None:
                transaction.set(doc_ref, record.to_dict())
            else:
                if doc_ref.get().exists:
                    raise ConflictError(f"{self.model.__name__} {doc_id} already exists")
                doc_ref.set(record.to_dict())
        except ConflictError:
            raise
        except Exception as e:
            raise self._fail(f"create {doc_id}", e) from e

        logger.debug(f"Created {self.collection_name}/{doc_id} for user {self.user_id}")
        return record

    def create_batch(self, records: List[ModelT]) -> List[ModelT]:
        if not records:
            return []
        if len(records) > MAX_BATCH_SIZE:
            raise ValidationError(f"Batch size exceeds limit: {len(records)} > {MAX_BATCH_SIZE}")
        try:
            batch = self.db.batch()
            for record in records:
                doc_ref = self.collection.document(getattr(record, self.id_field))
                batch.set(doc_ref, record.to_dict())
            batch.commit()
        except Exception as e:
            raise self._fail(f"create {len(records)} documents", e) from e

        logger.info(f"Created {len(records)} {self.collection_name} documents for user {self.user_id}")
        return records

    def update(self, doc_id: str, fields: Dict[str, Any]) -> bool:
        """
        Apply a partial update.

        Returns:
            True if updated, False if the document does not exist.
        """
        doc_ref = self.collection.document(doc_id)
        try:
            if not doc_ref.get().exists:
                logger.warning(f"{self.collection_name}/{doc_id} not found for update")
                return False
            doc_ref.update({**fields, "updated_at": utcnow()})
        except Exception as e:
            raise self._fail(f"update {doc_id}", e) from e
        return True

    def delete(self, doc_id: str) -> bool:
        doc_ref = self.collection.document(doc_id)
        try:
            if not doc_ref.get().exists:
                return False
            doc_ref.delete()
        except Exception as e:
            raise self._fail(f"delete {doc_id}", e) from e
        logger.debug(f"Deleted {self.collection_name}/{doc_id}")
        return True

    def query(self, filters: Iterable[Filter] = (), limit: Optional[int] = None) -> List[ModelT]:
        """Run an equality/range query; ordering is left to callers."""
        if limit is not None and (limit < 1 or limit > 1000):
            raise ValidationError(f"Invalid limit: {limit}")
        try:
            query = self.collection
            for field, op, value in filters:
                query = query.where(filter=FieldFilter(field, op, value))
            if limit:
                query = query.limit(limit)
            docs = list(query.stream())
        except Exception as e:
            raise self._fail("query", e) from e

        records = []
        for doc in docs:
            record = self._parse(doc)
            if record is not None:
                records.append(record)
        return records

import hashlib
import logging
from typing import Dict, List, Optional

import pycouchdb

from inkwell.db.couchdb import translate_storage_errors

logger = logging.getLogger(__name__)

CATEGORY_TYPE = "category"
CATEGORY_NAME_TYPE = "category-name"


def category_name_doc_id(name: str) -> str:
    digest = hashlib.sha1(name.encode("utf-8")).hexdigest()
    return f"{CATEGORY_NAME_TYPE}:{digest}"


class CouchCategoriesRepo:
    def __init__(self, couch_db):
        self.db = couch_db

    @translate_storage_errors
    def list_categories(self) -> List[dict]:
        all_docs = [row.get("doc", row) for row in self.db.all(include_docs=True)]
        categories = [doc for doc in all_docs if doc.get("type") == CATEGORY_TYPE]
        return sorted(categories, key=lambda doc: doc.get("name", ""))

    @translate_storage_errors
    def get_category(self, category_id: str) -> Optional[dict]:
        try:
            doc = self.db.get(category_id)
        except pycouchdb.exceptions.NotFound:
            return None
        return doc if doc.get("type") == CATEGORY_TYPE else None

    def name_map(self) -> Dict[str, str]:
        return {doc["_id"]: doc.get("name") for doc in self.list_categories()}

    @translate_storage_errors
    def insert_category(self, doc: dict) -> Optional[dict]:
        """
        Store a new category. Returns None when the name is already taken;
        the name reservation document makes the check atomic.
        """
        reservation_id = category_name_doc_id(doc["name"])
        try:
            self.db.save(
                {
                    "_id": reservation_id,
                    "type": CATEGORY_NAME_TYPE,
                    "category": doc["_id"],
                }
            )
        except pycouchdb.exceptions.Conflict:
            return None

        try:
            return self.db.save({**doc, "type": CATEGORY_TYPE})
        except Exception:
            self._release_name(reservation_id)
            raise

    def _release_name(self, reservation_id: str) -> None:
        try:
            self.db.delete(reservation_id)
        except Exception as e:
            logger.warning(f"Failed to release category name {reservation_id}: {e}")

from typing import List, Optional

import pycouchdb

from inkwell.db.couchdb import translate_storage_errors

POST_TYPE = "post"
SLUG_TYPE = "slug"


def slug_doc_id(slug: str) -> str:
    return f"{SLUG_TYPE}:{slug}"


class CouchPostsRepo:
    """
    Posts live as ``type: "post"`` documents. Every slug in use is backed by a
    ``slug:<slug>`` reservation document, so CouchDB's ``_id`` uniqueness is
    the unique constraint on slugs.
    """

    def __init__(self, couch_db):
        self.db = couch_db

    @translate_storage_errors
    def list_posts(self) -> List[dict]:
        all_docs = [row.get("doc", row) for row in self.db.all(include_docs=True)]
        return [doc for doc in all_docs if self._is_post(doc)]

    @translate_storage_errors
    def get_post(self, post_id: str) -> Optional[dict]:
        try:
            doc = self.db.get(post_id)
        except pycouchdb.exceptions.NotFound:
            return None
        return doc if self._is_post(doc) else None

    @translate_storage_errors
    def save_post(self, doc: dict) -> dict:
        """Insert a new post or write a new revision of an existing one."""
        return self.db.save({**doc, "type": POST_TYPE})

    @translate_storage_errors
    def delete_post(self, doc: dict) -> None:
        self.db.delete(doc["_id"])

    @translate_storage_errors
    def slug_exists(self, slug: str) -> bool:
        try:
            self.db.get(slug_doc_id(slug))
        except pycouchdb.exceptions.NotFound:
            return False
        return True

    @translate_storage_errors
    def reserve_slug(self, slug: str, post_id: str) -> bool:
        """Claim ``slug`` for ``post_id``; False when someone else holds it."""
        try:
            self.db.save({"_id": slug_doc_id(slug), "type": SLUG_TYPE, "post": post_id})
        except pycouchdb.exceptions.Conflict:
            return False
        return True

    @translate_storage_errors
    def release_slug(self, slug: str) -> None:
        try:
            self.db.delete(slug_doc_id(slug))
        except pycouchdb.exceptions.NotFound:
            pass

    @staticmethod
    def _is_post(doc: dict | None) -> bool:
        return bool(doc) and doc.get("type") == POST_TYPE

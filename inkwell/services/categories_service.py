import logging
from typing import List, Optional

from inkwell.errors import Conflict, ValidationError
from inkwell.schemas.blog import Category
from inkwell.utils import new_id, utc_now_iso

logger = logging.getLogger(__name__)


class CategoriesService:
    def __init__(self, repo):
        self.repo = repo

    def list_categories(self) -> List[Category]:
        return [to_category(doc) for doc in self.repo.list_categories()]

    def create_category(self, name: Optional[str]) -> Category:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")

        doc = self.repo.insert_category(
            {"_id": new_id(), "name": name, "createdAt": utc_now_iso()}
        )
        if doc is None:
            raise Conflict("Category already exists")

        logger.info(f"Created category {doc['_id']} ({name})")
        return to_category(doc)


def to_category(doc: dict) -> Category:
    return Category(id=doc["_id"], name=doc.get("name", ""), createdAt=doc.get("createdAt"))

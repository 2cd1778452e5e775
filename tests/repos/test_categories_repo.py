import pytest
import requests

from inkwell.errors import StorageUnavailable
from inkwell.repos.categories_repo import CouchCategoriesRepo, category_name_doc_id
from tests.conftest import FakeCouchDB


def test_list_categories_sorted_by_name():
    docs = {
        "b": {"_id": "b", "type": "category", "name": "Travel"},
        "a": {"_id": "a", "type": "category", "name": "Food"},
        "p": {"_id": "p", "type": "post", "title": "ignored"},
    }
    repo = CouchCategoriesRepo(FakeCouchDB(docs))

    assert [doc["name"] for doc in repo.list_categories()] == ["Food", "Travel"]


def test_insert_category_rejects_exact_duplicate_names():
    db = FakeCouchDB()
    repo = CouchCategoriesRepo(db)

    first = repo.insert_category({"_id": "c1", "name": "Tech"})
    second = repo.insert_category({"_id": "c2", "name": "Tech"})

    assert first["_id"] == "c1"
    assert second is None
    assert [doc["_id"] for doc in db.of_type("category")] == ["c1"]
    assert db.docs[category_name_doc_id("Tech")]["category"] == "c1"


def test_insert_category_names_are_case_sensitive():
    repo = CouchCategoriesRepo(FakeCouchDB())

    assert repo.insert_category({"_id": "c1", "name": "Tech"}) is not None
    assert repo.insert_category({"_id": "c2", "name": "tech"}) is not None


def test_get_category_and_name_map():
    repo = CouchCategoriesRepo(FakeCouchDB())
    repo.insert_category({"_id": "c1", "name": "Tech"})

    assert repo.get_category("c1")["name"] == "Tech"
    assert repo.get_category("missing") is None
    assert repo.get_category(category_name_doc_id("Tech")) is None
    assert repo.name_map() == {"c1": "Tech"}


def test_transport_errors_become_storage_unavailable():
    db = FakeCouchDB()
    db.fail_with = requests.Timeout("slow")

    with pytest.raises(StorageUnavailable):
        CouchCategoriesRepo(db).list_categories()


class FlakyCategorySaveDB(FakeCouchDB):
    """Accepts the name reservation, then loses the connection on the category itself."""

    def __init__(self):
        super().__init__()
        self.drop_category_saves = True

    def save(self, doc):
        if self.drop_category_saves and doc.get("type") == "category":
            raise requests.ConnectionError("connection reset")
        return super().save(doc)


def test_failed_category_save_releases_the_name():
    db = FlakyCategorySaveDB()
    repo = CouchCategoriesRepo(db)

    with pytest.raises(StorageUnavailable):
        repo.insert_category({"_id": "c1", "name": "Tech"})

    assert db.docs == {}
    assert repo.list_categories() == []

    db.drop_category_saves = False
    assert repo.insert_category({"_id": "c2", "name": "Tech"})["_id"] == "c2"

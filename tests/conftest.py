import copy
import time
import uuid

import jwt
import pycouchdb
import pytest

from inkwell.settings import Settings

TEST_SECRET = "inkwell-test-secret-that-is-long-enough"


class FakeCouchDB:
    """
    Minimal in-memory CouchDB stand-in.
    Set track_calls=True to record the order of get() calls.
    Set fail_with to an exception to make every call raise it.
    """

    def __init__(self, docs: dict | None = None, track_calls: bool = False):
        self.docs = dict(docs or {})
        self.attachments = {}
        self.track_calls = track_calls
        self.calls = []
        self.fail_with = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def get(self, doc_id: str) -> dict:
        self._check()
        if self.track_calls:
            self.calls.append(doc_id)
        if doc_id not in self.docs:
            raise pycouchdb.exceptions.NotFound(doc_id)
        return copy.deepcopy(self.docs[doc_id])

    def save(self, doc: dict) -> dict:
        self._check()
        doc = copy.deepcopy(doc)
        doc_id = doc.setdefault("_id", uuid.uuid4().hex)
        existing = self.docs.get(doc_id)
        if existing is not None and existing.get("_rev") != doc.get("_rev"):
            raise pycouchdb.exceptions.Conflict("Document update conflict.")
        revision = int(existing["_rev"].split("-")[0]) + 1 if existing and existing.get("_rev") else 1
        doc["_rev"] = f"{revision}-fake"
        self.docs[doc_id] = doc
        return copy.deepcopy(doc)

    def delete(self, doc_or_id):
        self._check()
        doc_id = doc_or_id["_id"] if isinstance(doc_or_id, dict) else doc_or_id
        if doc_id not in self.docs:
            raise pycouchdb.exceptions.NotFound(doc_id)
        del self.docs[doc_id]
        for key in [key for key in self.attachments if key[0] == doc_id]:
            del self.attachments[key]

    def all(self, include_docs: bool = True):
        self._check()
        if self.track_calls:
            self.calls.append(f"all(include_docs={include_docs})")
        if include_docs:
            return [{"doc": copy.deepcopy(doc)} for doc in self.docs.values()]
        return list(self.docs.values())

    def put_attachment(self, doc, content, filename=None, content_type=None):
        self._check()
        self.attachments[(doc["_id"], filename)] = (content, content_type)
        return doc

    def get_attachment(self, doc, filename, stream=False):
        self._check()
        entry = self.attachments.get((doc["_id"], filename))
        return entry[0] if entry else None

    def of_type(self, doc_type: str) -> list:
        return [doc for doc in self.docs.values() if doc.get("type") == doc_type]


class FakeBlobStore:
    """
    Blob store stand-in that remembers what was stored and discarded.
    """

    def __init__(self, prefix: str = "/uploads"):
        self.prefix = prefix
        self.stored = []
        self.discarded = []

    def store(self, upload):
        reference = f"{self.prefix}/{len(self.stored) + 1}-{upload.filename}"
        self.stored.append(reference)
        return reference

    def discard(self, reference):
        self.discarded.append(reference)
        return True


class FakePostsService:
    """
    Minimal posts service stand-in for router tests.
    """

    def __init__(self, list_posts_return=None, get_post_return=None):
        self._list_posts_return = list_posts_return
        self._get_post_return = get_post_return
        self.calls = []

    def list_posts(self, **kwargs):
        self.calls.append(("list", kwargs))
        return self._list_posts_return

    def get_post(self, post_id: str):
        self.calls.append(("get", post_id))
        return self._get_post_return


def make_settings(tmp_path=None, **overrides) -> Settings:
    values = {"AUTH_JWT_SECRET": TEST_SECRET, "ENVIRONMENT": "test"}
    if tmp_path is not None:
        values["UPLOAD_DIR"] = str(tmp_path)
    values.update(overrides)
    return Settings(**values)


def make_token(sub: str = "user_123", secret: str = TEST_SECRET, **claims) -> str:
    payload = {"sub": sub, "sid": "sess_1", "exp": int(time.time()) + 300, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(**claims) -> dict:
    return {"Authorization": f"Bearer {make_token(**claims)}"}


@pytest.fixture
def fake_db():
    return FakeCouchDB()


@pytest.fixture
def test_settings(tmp_path):
    return make_settings(tmp_path)

import copy
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class BlogClient:
    """
    Thin HTTP client for the Inkwell API.

    ``token_provider`` is called before each request; when it returns a token
    the request carries ``Authorization: Bearer <token>``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.token_provider = token_provider
        self._http = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # --- posts ---

    def list_posts(self, **params) -> Dict[str, Any]:
        """Returns the full ``{data, meta}`` body so callers can page."""
        query = {key: value for key, value in params.items() if value is not None}
        return self._request("GET", "/posts", params=query)

    def get_post(self, post_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/posts/{post_id}")["data"]

    def create_post(self, fields: Dict[str, Any], image=None) -> Dict[str, Any]:
        return self._request("POST", "/posts", data=fields, files=_image_files(image))["data"]

    def update_post(self, post_id: str, fields: Dict[str, Any], image=None) -> Dict[str, Any]:
        return self._request(
            "PUT", f"/posts/{post_id}", data=fields, files=_image_files(image)
        )["data"]

    def delete_post(self, post_id: str) -> str:
        return self._request("DELETE", f"/posts/{post_id}")["id"]

    # --- categories ---

    def list_categories(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/categories")["data"]

    def create_category(self, name: str) -> Dict[str, Any]:
        return self._request("POST", "/categories", json={"name": name})["data"]

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        headers = {}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self._http.request(method, url, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"API {method} {url} failed: {e}")
            raise ApiError("Network error: cannot reach API") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error or not body.get("success", False):
            message = body.get("message") or body.get("error") or "Unexpected API response"
            raise ApiError(message, response.status_code)
        return body


def _image_files(image):
    """``image`` is ``(filename, bytes, content_type)`` or None."""
    return {"image": image} if image else None


class PostsStore:
    """
    In-memory list of posts backed by a ``BlogClient``.

    Updates and deletes are applied locally first; if the API call fails the
    list is restored from a snapshot taken before the change.
    """

    def __init__(self, client: BlogClient):
        self.client = client
        self.posts: List[Dict[str, Any]] = []
        self.error: Optional[str] = None

    def refresh(self, **params) -> List[Dict[str, Any]]:
        self.error = None
        try:
            self.posts = self.client.list_posts(**params).get("data") or []
        except ApiError as e:
            self.error = e.message
            self.posts = []
        return self.posts

    def find(self, post_id: str) -> Optional[Dict[str, Any]]:
        return next((post for post in self.posts if post.get("id") == post_id), None)

    def create_post(self, fields: Dict[str, Any], image=None) -> Dict[str, Any]:
        post = self._run(lambda: self.client.create_post(fields, image))
        self.posts.insert(0, post)
        return post

    def update_post(self, post_id: str, fields: Dict[str, Any], image=None) -> Dict[str, Any]:
        snapshot = copy.deepcopy(self.posts)
        current = self.find(post_id)
        if current is not None:
            current.update({key: value for key, value in fields.items() if value is not None})

        saved = self._run(lambda: self.client.update_post(post_id, fields, image), snapshot)
        self._replace(saved)
        return saved

    def delete_post(self, post_id: str) -> str:
        snapshot = copy.deepcopy(self.posts)
        self.posts = [post for post in self.posts if post.get("id") != post_id]
        return self._run(lambda: self.client.delete_post(post_id), snapshot)

    def _run(self, call, snapshot: Optional[List[Dict[str, Any]]] = None):
        self.error = None
        try:
            return call()
        except ApiError as e:
            if snapshot is not None:
                self.posts = snapshot
            self.error = e.message
            raise

    def _replace(self, post: Dict[str, Any]) -> None:
        for index, existing in enumerate(self.posts):
            if existing.get("id") == post.get("id"):
                self.posts[index] = post
                return
        self.posts.insert(0, post)

import logging
import math
from typing import Dict, Optional

import pycouchdb

from inkwell.errors import Conflict, NotFound, ValidationError
from inkwell.schemas.blog import CategoryRef, Post, PostInput, PostPage
from inkwell.services.media_service import (
    UploadedImage,
    remove_local_image,
    resolve_featured_image,
    validate_upload,
)
from inkwell.services.slug_service import derive_unique_slug
from inkwell.settings import Settings, settings
from inkwell.utils import is_valid_id, new_id, utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "Anonymous"


class PostsService:
    def __init__(self, repo, categories_repo, blob_store, settings_obj: Settings = settings):
        self.repo = repo
        self.categories_repo = categories_repo
        self.blob_store = blob_store
        self.settings = settings_obj

    # --- reads ---

    def list_posts(
        self,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> PostPage:
        limit = limit or self.settings.DEFAULT_PAGE_LIMIT
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive integers")
        limit = min(limit, self.settings.MAX_PAGE_LIMIT)

        docs = self.repo.list_posts()
        if category:
            docs = [doc for doc in docs if doc.get("category") == category]
        if search:
            needle = search.lower()
            docs = [
                doc
                for doc in docs
                if needle in (doc.get("title") or "").lower()
                or needle in (doc.get("content") or "").lower()
            ]

        docs.sort(key=lambda doc: doc.get("createdAt") or "", reverse=True)
        total = len(docs)
        start = (page - 1) * limit
        page_docs = docs[start : start + limit]
        names = self.categories_repo.name_map() if page_docs else {}

        return PostPage(
            items=[to_post(doc, names) for doc in page_docs],
            total=total,
            page=page,
            limit=limit,
            pageCount=math.ceil(total / limit),
        )

    def get_post(self, post_id: str) -> Optional[Post]:
        doc = self.repo.get_post(post_id)
        if not doc:
            return None
        return to_post(doc, self._category_names(doc))

    # --- writes ---

    def create_post(
        self,
        data: PostInput,
        image: Optional[UploadedImage] = None,
        *,
        author_id: Optional[str] = None,
    ) -> Post:
        title = (data.title or "").strip()
        content = data.content or ""
        if not title or not content.strip():
            raise ValidationError("Title and content are required.")
        category_id = self._check_category(data.category)
        if image is not None:
            validate_upload(image, self.settings.MAX_UPLOAD_BYTES)

        post_id = new_id()
        slug = self._reserve_slug(title, post_id)
        stored_image = None
        try:
            featured_image = resolve_featured_image(
                self.blob_store,
                image,
                data.featuredImage,
                max_bytes=self.settings.MAX_UPLOAD_BYTES,
            )
            if image is not None:
                stored_image = featured_image

            now = utc_now_iso()
            self.repo.save_post(
                {
                    "_id": post_id,
                    "title": title,
                    "content": content,
                    "slug": slug,
                    "author": (data.author or "").strip() or DEFAULT_AUTHOR,
                    "authorId": author_id,
                    "category": category_id,
                    "featuredImage": featured_image,
                    "createdAt": now,
                    "updatedAt": now,
                }
            )
        except Exception:
            self._rollback(slug, stored_image)
            raise

        logger.info(f"Created post {post_id} with slug {slug}")
        return self._refetch(post_id)

    def update_post(
        self,
        post_id: str,
        data: PostInput,
        image: Optional[UploadedImage] = None,
    ) -> Post:
        doc = self.repo.get_post(post_id)
        if not doc:
            raise NotFound("Post not found")

        updated = dict(doc)
        if data.title is not None:
            updated["title"] = data.title.strip()
            if not updated["title"]:
                raise ValidationError("Title cannot be empty")
        if data.content is not None:
            if not data.content.strip():
                raise ValidationError("Content cannot be empty")
            updated["content"] = data.content
        if data.category is not None:
            updated["category"] = self._check_category(data.category)
        if data.author is not None:
            updated["author"] = data.author.strip() or DEFAULT_AUTHOR
        if image is not None:
            validate_upload(image, self.settings.MAX_UPLOAD_BYTES)

        old_slug = doc.get("slug")
        new_slug = None
        if data.title is not None and updated["title"] != doc.get("title"):
            new_slug = self._reserve_slug(updated["title"], post_id, current=old_slug)
            if new_slug == old_slug:
                new_slug = None
            else:
                updated["slug"] = new_slug

        previous_image = doc.get("featuredImage")
        stored_image = None
        try:
            updated["featuredImage"] = resolve_featured_image(
                self.blob_store,
                image,
                data.featuredImage,
                previous_image,
                max_bytes=self.settings.MAX_UPLOAD_BYTES,
            )
            if image is not None:
                stored_image = updated["featuredImage"]
            updated["updatedAt"] = utc_now_iso()
            self.repo.save_post(updated)
        except pycouchdb.exceptions.Conflict as e:
            self._rollback(new_slug, stored_image)
            raise Conflict("Post was modified concurrently, retry the update") from e
        except Exception:
            self._rollback(new_slug, stored_image)
            raise

        if new_slug and old_slug is not None:
            self._release_slug(old_slug)
        if stored_image and previous_image and previous_image != stored_image:
            self._remove_local_image(previous_image)

        logger.info(f"Updated post {post_id}")
        return self._refetch(post_id)

    def delete_post(self, post_id: str) -> str:
        doc = self.repo.get_post(post_id)
        if not doc:
            raise NotFound("Post not found")

        self.repo.delete_post(doc)
        if doc.get("slug") is not None:
            self._release_slug(doc["slug"])
        if doc.get("featuredImage"):
            self._remove_local_image(doc["featuredImage"])

        logger.info(f"Deleted post {post_id}")
        return post_id

    # --- helpers ---

    def _reserve_slug(self, title: str, post_id: str, current: Optional[str] = None) -> str:
        """
        Derive a free slug and claim it. A reservation conflict means another
        writer took the slug between the check and the claim, so derive again.
        """

        def exists(candidate: str) -> bool:
            return candidate != current and self.repo.slug_exists(candidate)

        for _ in range(self.settings.SLUG_MAX_ATTEMPTS):
            slug = derive_unique_slug(title, exists)
            if slug == current or self.repo.reserve_slug(slug, post_id):
                return slug
            logger.warning(f"Slug '{slug}' was claimed concurrently, retrying")
        raise Conflict(f"Could not reserve a unique slug for '{title}'")

    def _check_category(self, category_id: Optional[str]) -> Optional[str]:
        if not category_id:
            return None
        if not is_valid_id(category_id):
            raise ValidationError("category must be a valid id")
        if not self.categories_repo.get_category(category_id):
            raise ValidationError("category does not exist")
        return category_id

    def _category_names(self, doc: dict) -> Dict[str, str]:
        category_id = doc.get("category")
        if not category_id:
            return {}
        category = self.categories_repo.get_category(category_id)
        return {category_id: category.get("name")} if category else {}

    def _refetch(self, post_id: str) -> Post:
        post = self.get_post(post_id)
        if post is None:
            raise NotFound("Post not found")
        return post

    def _rollback(self, slug: Optional[str], stored_image: Optional[str]) -> None:
        if stored_image:
            self.blob_store.discard(stored_image)
        if slug is not None:
            self._release_slug(slug)

    def _release_slug(self, slug: str) -> None:
        try:
            self.repo.release_slug(slug)
        except Exception as e:
            logger.warning(f"Failed to release slug '{slug}': {e}")

    def _remove_local_image(self, reference: str) -> None:
        try:
            remove_local_image(
                reference, self.settings.UPLOAD_DIR, self.settings.UPLOAD_URL_PREFIX
            )
        except Exception as e:
            logger.warning(f"Image cleanup failed for {reference}: {e}")


def to_post(doc: dict, category_names: Dict[str, str]) -> Post:
    category_id = doc.get("category")
    category = (
        CategoryRef(id=category_id, name=category_names.get(category_id))
        if category_id
        else None
    )
    return Post(
        id=doc["_id"],
        title=doc.get("title", ""),
        content=doc.get("content", ""),
        slug=doc.get("slug", ""),
        author=doc.get("author") or DEFAULT_AUTHOR,
        authorId=doc.get("authorId"),
        category=category,
        featuredImage=doc.get("featuredImage"),
        createdAt=doc.get("createdAt", ""),
        updatedAt=doc.get("updatedAt"),
    )

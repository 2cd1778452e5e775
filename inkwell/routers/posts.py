import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from inkwell import dependencies as deps
from inkwell.errors import BlogError, InternalError, NotFound, ValidationError
from inkwell.schemas.blog import (
    DeleteResponse,
    PageMeta,
    PostInput,
    PostListResponse,
    PostResponse,
)
from inkwell.security import Identity, get_current_identity
from inkwell.services.media_service import UploadedImage
from inkwell.services.posts_service import PostsService
from inkwell.utils import is_valid_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["posts"])


@router.get("/posts", response_model=PostListResponse)
def list_posts(
    request: Request,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: Optional[str] = None,
    category: Optional[str] = None,
    service: PostsService = Depends(deps.get_posts_service),
):
    """List posts, newest first, with optional search and category filter."""
    if category and not is_valid_id(category):
        raise ValidationError("category must be a valid id")
    try:
        result = service.list_posts(
            search=search, category=category or None, page=page, limit=limit
        )
    except BlogError:
        raise
    except Exception as e:
        _log_unexpected(request, e)
        raise InternalError("Failed to retrieve posts") from e

    return PostListResponse(
        data=result.items,
        meta=PageMeta(
            total=result.total,
            page=result.page,
            limit=result.limit,
            pages=result.pageCount,
        ),
    )


@router.get("/posts/{post_id}", response_model=PostResponse)
def get_post(
    post_id: str,
    request: Request,
    service: PostsService = Depends(deps.get_posts_service),
):
    """Get a single post by id."""
    _require_post_id(post_id)
    try:
        post = service.get_post(post_id)
    except BlogError:
        raise
    except Exception as e:
        _log_unexpected(request, e)
        raise InternalError("Failed to retrieve post") from e

    if not post:
        raise NotFound("Post not found")
    return PostResponse(data=post)


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(
    request: Request,
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    featuredImage: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    identity: Identity = Depends(get_current_identity),
    service: PostsService = Depends(deps.get_posts_service),
):
    data = PostInput(
        title=title,
        content=content,
        author=author,
        category=category,
        featuredImage=featuredImage,
    )
    try:
        post = service.create_post(
            data,
            _read_upload(image, service.settings.MAX_UPLOAD_BYTES),
            author_id=identity.user_id,
        )
    except BlogError:
        raise
    except Exception as e:
        _log_unexpected(request, e, data)
        raise InternalError("Could not create post.") from e
    return PostResponse(data=post)


@router.put("/posts/{post_id}", response_model=PostResponse)
def update_post(
    post_id: str,
    request: Request,
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    featuredImage: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    identity: Identity = Depends(get_current_identity),
    service: PostsService = Depends(deps.get_posts_service),
):
    _require_post_id(post_id)
    data = PostInput(
        title=title,
        content=content,
        author=author,
        category=category,
        featuredImage=featuredImage,
    )
    try:
        post = service.update_post(
            post_id, data, _read_upload(image, service.settings.MAX_UPLOAD_BYTES)
        )
    except BlogError:
        raise
    except Exception as e:
        _log_unexpected(request, e, data)
        raise InternalError("Could not update post.") from e
    return PostResponse(data=post)


@router.delete("/posts/{post_id}", response_model=DeleteResponse)
def delete_post(
    post_id: str,
    request: Request,
    identity: Identity = Depends(get_current_identity),
    service: PostsService = Depends(deps.get_posts_service),
):
    _require_post_id(post_id)
    try:
        deleted_id = service.delete_post(post_id)
    except BlogError:
        raise
    except Exception as e:
        _log_unexpected(request, e)
        raise InternalError("Could not delete post.") from e
    return DeleteResponse(message="Post deleted successfully", id=deleted_id)


def _require_post_id(post_id: str) -> None:
    if not is_valid_id(post_id):
        raise ValidationError("Invalid post id")


def _read_upload(image: Optional[UploadFile], max_bytes: int) -> Optional[UploadedImage]:
    # Browsers send an empty file part when no file was picked
    if image is None or not image.filename:
        return None
    # One byte past the limit is enough for validate_upload to reject it
    return UploadedImage(
        filename=image.filename,
        content_type=image.content_type or "",
        data=image.file.read(max_bytes + 1),
    )


def _log_unexpected(request: Request, error: Exception, data: PostInput | None = None):
    body = data.model_dump(exclude_none=True) if data else None
    logger.error(
        f"Unexpected error on {request.method} {request.url.path} body={body}: {error}",
        exc_info=True,
    )

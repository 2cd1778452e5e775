import logging

from fastapi import APIRouter, Depends, Request

from inkwell import dependencies as deps
from inkwell.errors import BlogError, InternalError
from inkwell.schemas.blog import CategoryCreate, CategoryListResponse, CategoryResponse
from inkwell.security import get_current_identity
from inkwell.services.categories_service import CategoriesService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["categories"])


@router.get("/categories", response_model=CategoryListResponse)
def list_categories(
    request: Request,
    service: CategoriesService = Depends(deps.get_categories_service),
):
    """All categories, sorted by name."""
    try:
        return CategoryListResponse(data=service.list_categories())
    except BlogError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error on {request.method} {request.url.path}: {e}")
        raise InternalError("Failed to retrieve categories") from e


@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=201,
    dependencies=[Depends(get_current_identity)],
)
def create_category(
    payload: CategoryCreate,
    request: Request,
    service: CategoriesService = Depends(deps.get_categories_service),
):
    try:
        return CategoryResponse(data=service.create_category(payload.name))
    except BlogError:
        raise
    except Exception as e:
        logger.error(
            f"Unexpected error on {request.method} {request.url.path} "
            f"body={payload.model_dump()}: {e}"
        )
        raise InternalError("Failed to create category") from e

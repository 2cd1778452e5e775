from typing import List, Optional

from pydantic import BaseModel, Field


class CategoryRef(BaseModel):
    id: str
    name: Optional[str] = None


class Category(BaseModel):
    id: str
    name: str
    createdAt: Optional[str] = None


class CategoryCreate(BaseModel):
    name: Optional[str] = None


class Post(BaseModel):
    id: str
    title: str
    content: str
    slug: str
    author: str = "Anonymous"
    authorId: Optional[str] = None
    category: Optional[CategoryRef] = None
    featuredImage: Optional[str] = None
    createdAt: str
    updatedAt: Optional[str] = None


class PostInput(BaseModel):
    """Write payload; every field is optional so updates can be partial."""

    title: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    featuredImage: Optional[str] = None


class PostPage(BaseModel):
    items: List[Post] = Field(default_factory=list)
    total: int
    page: int
    limit: int
    pageCount: int


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class PostResponse(BaseModel):
    success: bool = True
    data: Post


class PostListResponse(BaseModel):
    success: bool = True
    data: List[Post]
    meta: PageMeta


class DeleteResponse(BaseModel):
    success: bool = True
    message: str
    id: str


class CategoryResponse(BaseModel):
    success: bool = True
    data: Category


class CategoryListResponse(BaseModel):
    success: bool = True
    data: List[Category]

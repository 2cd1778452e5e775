from fastapi import Depends

from inkwell.db.couchdb import get_couch
from inkwell.repos.categories_repo import CouchCategoriesRepo
from inkwell.repos.posts_repo import CouchPostsRepo
from inkwell.services.categories_service import CategoriesService
from inkwell.services.media_service import build_blob_store
from inkwell.services.posts_service import PostsService
from inkwell.settings import Settings, get_settings


def get_posts_repo(couch=Depends(get_couch)):
    return CouchPostsRepo(couch)


def get_categories_repo(couch=Depends(get_couch)):
    return CouchCategoriesRepo(couch)


def get_blob_store(
    couch=Depends(get_couch),
    current_settings: Settings = Depends(get_settings),
):
    return build_blob_store(current_settings, couch)


def get_posts_service(
    repo=Depends(get_posts_repo),
    categories_repo=Depends(get_categories_repo),
    blob_store=Depends(get_blob_store),
    current_settings: Settings = Depends(get_settings),
):
    return PostsService(
        repo=repo,
        categories_repo=categories_repo,
        blob_store=blob_store,
        settings_obj=current_settings,
    )


def get_categories_service(repo=Depends(get_categories_repo)):
    return CategoriesService(repo)

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from inkwell.db.couchdb import get_couch
from inkwell.errors import NotFound
from inkwell.services.media_service import CouchBlobStore
from inkwell.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])


def get_media_store(
    couch=Depends(get_couch),
    current_settings: Settings = Depends(get_settings),
) -> CouchBlobStore:
    return CouchBlobStore(couch, current_settings.MEDIA_URL_PREFIX)


@router.get("/{filename}")
def get_image(filename: str, store: CouchBlobStore = Depends(get_media_store)):
    """
    Serve uploaded images stored as CouchDB attachments
    """
    image_data, content_type = store.fetch(filename)

    if not image_data or not content_type:
        raise NotFound("Image not found")

    headers = {
        "Content-Length": str(len(image_data)),
        "Accept-Ranges": "bytes",
    }

    return Response(content=image_data, media_type=content_type, headers=headers)

import functools
import logging

import pycouchdb
import requests

from inkwell.errors import StorageUnavailable
from inkwell.settings import settings

logger = logging.getLogger(__name__)


def get_couch():
    """
    Create a CouchDB database handle.
    Called at runtime to avoid import-time connections.
    """
    try:
        couch = pycouchdb.Server(settings.couchdb_url)
        return couch.database(settings.COUCHDB_DATABASE)
    except requests.RequestException as e:
        logger.error(f"Cannot reach CouchDB: {e}")
        raise StorageUnavailable("Database unavailable") from e


def ensure_database() -> bool:
    """Create the configured database when it does not exist yet."""
    couch = pycouchdb.Server(settings.couchdb_url)
    try:
        couch.database(settings.COUCHDB_DATABASE)
        return False
    except pycouchdb.exceptions.NotFound:
        couch.create(settings.COUCHDB_DATABASE)
        logger.info(f"Created CouchDB database {settings.COUCHDB_DATABASE}")
        return True
    except requests.RequestException as e:
        logger.warning(f"CouchDB unreachable at startup: {e}")
        return False


def translate_storage_errors(func):
    """Surface CouchDB transport failures as StorageUnavailable."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except requests.RequestException as e:
            logger.error(f"CouchDB request failed in {func.__name__}: {e}")
            raise StorageUnavailable("Database unavailable") from e

    return wrapper

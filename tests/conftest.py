import pytest
from redis.exceptions import ConnectionError

from markbin.database import InMemoryStore, PasteDatabase
from markbin.models import Paste, PasteMetadata


class MetadataWriteFails(InMemoryStore):
    """Backend that accepts the url claim but fails the metadata write."""

    def hset(self, key, mapping):
        raise ConnectionError("down")


class MetadataWriteAndCleanupFail(MetadataWriteFails):
    def delete(self, key):
        raise ConnectionError("down")


def make_paste(url="abc", content="# Hi", title="", view_password=""):
    return Paste(
        url=url,
        content=content,
        metadata=PasteMetadata(title=title, view_password=view_password),
    )


@pytest.fixture
def store():
    return PasteDatabase(client=InMemoryStore())


@pytest.fixture
def protected(store):
    paste = make_paste(url="x", content="*secret* notes", view_password="s3cret")
    store.save_paste(paste)
    return paste

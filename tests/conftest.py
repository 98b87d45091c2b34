import base64
import copy

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from gallery.client.api import GalleryAPI
from gallery.config import settings
from gallery.errors import BlobStoreError, MetadataStoreError
from gallery.main import app
from gallery.routers.images import get_blob_store, get_metadata_store

JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01" + b"not really pixels" + b"\xff\xd9"
API_BASE_URL = f"http://test/{settings.SERVICE_ID}"


def data_url(data: bytes = JPEG_BYTES, media_type: str = "image/jpeg") -> str:
    return f"data:{media_type};base64,{base64.b64encode(data).decode()}"


class InMemoryMetadataStore:
    """Same interface as MetadataStore, kept in a dict."""

    def __init__(self):
        self.items = {}
        self.fail_after_sets = None
        self.fail_deletes = False

    async def set(self, key, value):
        if self.fail_after_sets is not None and len(self.items) >= self.fail_after_sets:
            raise MetadataStoreError(f"put failed for {key}")
        self.items[key] = copy.deepcopy(value)

    async def get(self, key):
        value = self.items.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def delete(self, key):
        if self.fail_deletes:
            raise MetadataStoreError(f"delete failed for {key}")
        self.items.pop(key, None)

    async def get_by_prefix(self, prefix):
        return [copy.deepcopy(v) for k, v in self.items.items() if k.startswith(prefix)]


class InMemoryBlobStore:
    """Same interface as BlobStore; signed URLs carry a counter so refreshes are visible."""

    def __init__(self):
        self.objects = {}
        self.signed = 0
        self.fail_uploads = False
        self.fail_removes = False

    async def upload(self, path, data, content_type="image/jpeg"):
        if self.fail_uploads or path in self.objects:
            raise BlobStoreError(f"upload failed for {path}")
        self.objects[path] = data
        return path

    async def remove(self, path):
        if self.fail_removes:
            raise BlobStoreError(f"delete failed for {path}")
        self.objects.pop(path, None)

    async def create_signed_url(self, path, expires_in=None):
        self.signed += 1
        return f"https://blobs.test/{path}?token={self.signed}"


@pytest.fixture
def metadata_store():
    return InMemoryMetadataStore()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def stores(metadata_store, blob_store):
    app.dependency_overrides[get_metadata_store] = lambda: metadata_store
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    yield metadata_store, blob_store
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(stores):
    headers = {"Authorization": f"Bearer {settings.PUBLIC_KEY}"}
    async with AsyncClient(transport=ASGITransport(app=app), base_url=API_BASE_URL, headers=headers) as ac:
        yield ac


@pytest_asyncio.fixture
async def anon_client(stores):
    async with AsyncClient(transport=ASGITransport(app=app), base_url=API_BASE_URL) as ac:
        yield ac


@pytest_asyncio.fixture
async def gallery_api(stores):
    api = GalleryAPI(base_url=API_BASE_URL, public_key=settings.PUBLIC_KEY, transport=ASGITransport(app=app))
    yield api
    await api.aclose()

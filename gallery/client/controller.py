import base64
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

import structlog

from gallery.client.api import GalleryAPI, GalleryAPIError
from gallery.client.state import GalleryState, ImageData
from gallery.models import month_key

logger = structlog.get_logger(__name__)

# Placeholder gate for the upload/delete controls, not a security boundary
GALLERY_USERNAME = "henjuu"
GALLERY_PASSWORD = "solros45"

JPEG_MEDIA_TYPES = ("image/jpeg", "image/jpg")


class AuthenticationRequired(Exception):
    pass


@dataclass
class SelectedFile:
    """A file picked for upload, with the media type its source declared."""

    name: str
    content_type: str
    data: bytes

    @property
    def is_jpeg(self) -> bool:
        return self.content_type.lower() in JPEG_MEDIA_TYPES

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.content_type.lower()};base64,{encoded}"


class GalleryController:
    """
    Handlers for the gallery view.

    All mutation of the GalleryState goes through here. `alert` shows a
    blocking message and `confirm` asks a yes/no question; both are
    supplied by whatever front end drives the controller.
    """

    def __init__(self, api: GalleryAPI, state: Optional[GalleryState] = None,
                 alert: Callable[[str], None] = print,
                 confirm: Callable[[str], bool] = lambda message: True,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.api = api
        self.state = state or GalleryState()
        self.alert = alert
        self.confirm = confirm
        self.clock = clock

    async def load(self):
        self.state.loading = True
        try:
            raw = await self.api.list_images()
            images = [ImageData.model_validate(item) for item in raw]
            images.sort(key=lambda image: image.date, reverse=True)
            self.state.images = images
        except (GalleryAPIError, ValueError) as e:
            logger.error("load_failed", error=str(e))
        finally:
            self.state.loading = False

    def open_login_modal(self):
        self.state.show_login_modal = True
        self.state.login_error = ""

    def close_login_modal(self):
        self.state.show_login_modal = False
        self.state.clear_credentials()
        self.state.login_error = ""

    def login(self, username: Optional[str] = None, password: Optional[str] = None) -> bool:
        if username is not None:
            self.state.username = username
        if password is not None:
            self.state.password = password

        if self.state.username == GALLERY_USERNAME and self.state.password == GALLERY_PASSWORD:
            self.state.is_authenticated = True
            self.state.login_error = ""
            self.state.show_login_modal = False
            self.state.clear_credentials()
            return True

        self.state.login_error = "Invalid username or password"
        self.state.password = ""
        return False

    def logout(self):
        self.state.is_authenticated = False
        self.state.clear_credentials()

    def _require_login(self):
        if not self.state.is_authenticated:
            raise AuthenticationRequired("Log in to change the gallery")

    def build_upload_batch(self, files: Iterable[SelectedFile]) -> list[dict]:
        batch = []
        for selected in files:
            if not selected.is_jpeg:
                logger.debug("upload_file_ignored", name=selected.name, content_type=selected.content_type)
                continue
            stamped = self.clock()
            batch.append({
                "base64": selected.to_data_url(),
                "date": stamped.isoformat(),
                "monthYear": month_key(stamped),
            })
        return batch

    async def upload(self, files: Iterable[SelectedFile]) -> bool:
        self._require_login()
        if self.state.uploading:
            return False

        batch = self.build_upload_batch(files)
        if not batch:
            return False

        self.state.uploading = True
        try:
            result = await self.api.upload_images(batch)
            for skipped in result.get("skipped", []):
                logger.warning("upload_entry_skipped", **skipped)
            await self.load()
            return True
        except GalleryAPIError as e:
            logger.error("upload_failed", error=str(e))
            self.alert("Failed to upload images")
            return False
        finally:
            self.state.uploading = False

    async def delete(self, image_id: str) -> bool:
        self._require_login()
        if self.state.deleting:
            return False
        if not self.confirm("Are you sure you want to delete this image?"):
            return False

        self.state.deleting = True
        try:
            await self.api.delete_image(image_id)
            await self.load()
            return True
        except GalleryAPIError as e:
            logger.error("delete_failed", id=image_id, error=str(e))
            self.alert("Failed to delete image")
            return False
        finally:
            self.state.deleting = False

    async def close(self):
        self.state.reset()
        await self.api.aclose()

    async def __aenter__(self):
        await self.load()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

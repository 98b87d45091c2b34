from dataclasses import dataclass, field

from pydantic import Field

from gallery.models import CamelModel, Timestamp


class ImageData(CamelModel):
    """An image as the client displays it; `date` is parsed for sorting."""

    id: str
    url: str = ""
    file_path: str = ""
    date: Timestamp
    month_year: str = Field(pattern=r"^\d{4}-\d{2}$")


@dataclass
class GalleryState:
    is_authenticated: bool = False
    show_login_modal: bool = False
    username: str = ""
    password: str = ""
    login_error: str = ""
    images: list[ImageData] = field(default_factory=list)
    loading: bool = False
    uploading: bool = False
    deleting: bool = False

    def clear_credentials(self):
        self.username = ""
        self.password = ""

    def reset(self):
        """Back to the initial, empty state."""
        self.__init__()

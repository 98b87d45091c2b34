from typing import Annotated, List, Optional
from datetime import datetime, timezone
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def month_key(date: datetime) -> str:
    """YYYY-MM of a timestamp, taken in its own UTC offset."""
    return f"{date.year:04d}-{date.month:02d}"


def assume_utc(date: datetime) -> datetime:
    # Naive timestamps are read as UTC so every stored date compares
    if date.tzinfo is None:
        return date.replace(tzinfo=timezone.utc)
    return date


Timestamp = Annotated[datetime, AfterValidator(assume_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageRecord(CamelModel):
    id: str
    file_path: str
    url: str = ""
    date: Timestamp
    month_year: str

    def to_item(self) -> dict:
        """JSON-compatible dict using the stored (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


class UploadEntry(CamelModel):
    base64: str
    date: Timestamp
    month_year: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}$")

    @model_validator(mode="after")
    def check_month_year(self):
        expected = month_key(self.date)
        if self.month_year is None:
            self.month_year = expected
        elif self.month_year != expected:
            raise ValueError(f"monthYear {self.month_year} does not match date {expected}")
        return self


class SkippedEntry(BaseModel):
    index: int
    reason: str


class UploadResponse(BaseModel):
    success: bool = True
    images: List[ImageRecord] = []
    skipped: List[SkippedEntry] = []


class ImageListResponse(BaseModel):
    images: List[ImageRecord] = []

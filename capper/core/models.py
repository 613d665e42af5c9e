from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

UNKNOWN_PLACE = "Unknown Place"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _new_id() -> str:
    return uuid4().hex


def _format_day(value: datetime) -> str:
    return f"{value:%b} {value.day}, {value.year}"


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class PhotoRecord(BaseModel):
    """Read-only fact about one photo as supplied by a photo source."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    coordinate: Optional[Coordinate] = None

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, v: datetime) -> datetime:
        return _as_utc(v)


class PlaceCluster(BaseModel):
    id: str = Field(default_factory=_new_id)
    photo_ids: list[str] = Field(min_length=1)
    representative: Optional[Coordinate] = None
    resolved_title: str = ""
    subtitle: str = ""
    custom_title: Optional[str] = None
    country_code: Optional[str] = None
    start_time: datetime
    end_time: datetime
    photo_count: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_title(self) -> str:
        return self.custom_title or self.resolved_title

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cover_photo_id(self) -> str:
        return self.photo_ids[0]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def date_range_label(self) -> str:
        first = _format_day(self.start_time)
        last = _format_day(self.end_time)
        if first == last:
            return first
        return f"{first} – {last}"


class TripSegment(BaseModel):
    """Consecutive place clusters that belong to one trip."""

    id: str = Field(default_factory=_new_id)
    cluster_ids: list[str] = Field(min_length=1)
    centroid: Optional[Coordinate] = None
    start_time: datetime
    end_time: datetime


class RecapDraft(BaseModel):
    id: str = Field(default_factory=_new_id)
    clusters: list[PlaceCluster] = Field(default_factory=list)
    trips: list[TripSegment] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def find_cluster(self, cluster_id: str) -> Optional[PlaceCluster]:
        for cluster in self.clusters:
            if cluster.id == cluster_id:
                return cluster
        return None


class PlaceComponents(BaseModel):
    """Backend-neutral reverse geocode answer, finest level first."""

    name: Optional[str] = None
    neighbourhood: Optional[str] = None
    locality: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None


class GeocodeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    subtitle: str = ""
    country_code: Optional[str] = None

    @classmethod
    def unknown(cls) -> "GeocodeResult":
        return cls(title=UNKNOWN_PLACE, subtitle="")

    @property
    def is_unknown(self) -> bool:
        return self.title == UNKNOWN_PLACE

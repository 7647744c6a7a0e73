"""Shared data models used across the SALON BOARD agent."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class Credentials:
    """Login credentials for the portal."""

    user_id: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ReservationQuery:
    """Identifier of the reservation to read."""

    reserve_id: str


@dataclass(frozen=True)
class PageState:
    """Title and URL observed at a navigation checkpoint."""

    title: str
    url: str


class ReservationRecord(BaseModel):
    """Booking details read from the reservation edit page."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    stylist_id: str = Field(alias="stylistId")
    date: str = Field(description="Reservation date as YYYY-MM-DD.")
    start_time: str = Field(alias="startTime")
    term: str


class ReservationOutput(BaseModel):
    """Object emitted once per successful run."""

    model_config = ConfigDict(frozen=True)

    reservation: ReservationRecord

    def to_payload(self) -> dict[str, dict[str, str]]:
        return self.model_dump(by_alias=True)

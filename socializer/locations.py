"""
Map markers for society interview locations.
"""

from __future__ import annotations

from dataclasses import dataclass
from numbers import Real

from socializer.db import DocumentStore
from socializer.models import SocietyEvent, SocietyRecord
from socializer.societies import list_societies

PURPLE = "purple"
BLUE = "blue"
ORANGE = "orange"
GREEN = "green"


@dataclass
class Marker:
    society_id: str
    name: str
    logo: str
    slogan: str
    description: str
    main_work: str
    is_open_for_interviews: bool
    events: list[SocietyEvent]
    location_name: str
    coordinates: list[float]
    color: str


def marker_color(society: SocietyRecord) -> str:
    has_events = bool(society.events)
    if society.is_open_for_interviews and has_events:
        return PURPLE
    if society.is_open_for_interviews:
        return BLUE
    if has_events:
        return ORANGE
    return GREEN


def _valid_coordinates(value) -> bool:
    return (
        isinstance(value, list)
        and len(value) == 2
        and all(isinstance(v, Real) and not isinstance(v, bool) for v in value)
    )


def society_markers(society: SocietyRecord) -> list[Marker]:
    color = marker_color(society)
    return [
        Marker(
            society_id=society.id,
            name=society.name,
            logo=society.logo,
            slogan=society.slogan,
            description=society.description,
            main_work=society.main_work,
            is_open_for_interviews=society.is_open_for_interviews,
            events=society.events,
            location_name=location.name,
            coordinates=[float(v) for v in location.coordinates],
            color=color,
        )
        for location in society.locations
        if _valid_coordinates(location.coordinates)
    ]


def list_markers(store: DocumentStore) -> list[Marker]:
    markers: list[Marker] = []
    for society in list_societies(store):
        markers.extend(society_markers(society))
    return markers

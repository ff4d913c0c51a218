"""Styling policy for the school map.

Every function here is pure: the same region or school always produces the
same visual parameters.  The rating → colour and rating → group rules are
explicit lookup tables rather than conditional chains so that they are easy to
test and to change in one place.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from html import escape
from types import MappingProxyType

from schoolmap.schemas.school import OfstedRating, SchoolRecord


class RatingGroup(str, Enum):
    """Three-way partition of Ofsted ratings used for colours and layers."""

    OUTSTANDING = "outstanding"
    GOOD = "good"
    OTHER = "other"


RATING_GROUPS: dict[OfstedRating, RatingGroup] = {
    OfstedRating.OUTSTANDING: RatingGroup.OUTSTANDING,
    OfstedRating.GOOD: RatingGroup.GOOD,
    OfstedRating.REQUIRES_IMPROVEMENT: RatingGroup.OTHER,
    OfstedRating.INADEQUATE: RatingGroup.OTHER,
    OfstedRating.SERIOUS_WEAKNESSES: RatingGroup.OTHER,
    OfstedRating.SPECIAL_MEASURES: RatingGroup.OTHER,
}

GROUP_ORDER = (RatingGroup.OUTSTANDING, RatingGroup.GOOD, RatingGroup.OTHER)


def rating_group(rating: OfstedRating | None) -> RatingGroup:
    """Return the group for *rating*; unrated schools fall into ``OTHER``."""
    if rating is None:
        return RatingGroup.OTHER
    return RATING_GROUPS[rating]


@dataclass(frozen=True)
class StylingPolicy:
    """Declarative styling constants plus the pure functions that apply them.

    Parameters
    ----------
    area_threshold:
        Regions with an area strictly above this are filled; the rest get a
        fill opacity of 0.
    """

    area_threshold: float = 1_000_000_000.0
    high_fill_opacity: float = 0.5
    large_fill_color: str = "#2b8cbe"
    small_fill_color: str = "#ffffff"
    border_color: str = "#444444"
    border_weight: float = 1.0
    primary_icon: str = "child"
    other_icon: str = "graduation-cap"
    icon_prefix: str = "fa"
    group_colors: Mapping[RatingGroup, str] = field(
        default_factory=lambda: {
            RatingGroup.OUTSTANDING: "green",
            RatingGroup.GOOD: "blue",
            RatingGroup.OTHER: "red",
        },
        hash=False,
    )
    group_labels: Mapping[RatingGroup, str] = field(
        default_factory=lambda: {
            RatingGroup.OUTSTANDING: "Outstanding",
            RatingGroup.GOOD: "Good",
            RatingGroup.OTHER: "Requires improvement or below",
        },
        hash=False,
    )
    group_visible: Mapping[RatingGroup, bool] = field(
        default_factory=lambda: {
            RatingGroup.OUTSTANDING: True,
            RatingGroup.GOOD: True,
            RatingGroup.OTHER: False,
        },
        hash=False,
    )

    def __post_init__(self) -> None:
        for name in ("group_colors", "group_labels", "group_visible"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    # -- Polygons --

    def fill_opacity(self, area: float) -> float:
        return self.high_fill_opacity if area > self.area_threshold else 0.0

    def fill_color(self, area: float) -> str:
        return self.large_fill_color if area > self.area_threshold else self.small_fill_color

    def polygon_style(self, area: float) -> dict[str, object]:
        """Leaflet path options for a region of the given area."""
        return {
            "fillColor": self.fill_color(area),
            "fillOpacity": self.fill_opacity(area),
            "color": self.border_color,
            "weight": self.border_weight,
        }

    # -- Markers --

    def marker_icon(self, phase: str) -> str:
        return self.primary_icon if phase.strip().lower() == "primary" else self.other_icon

    def marker_color(self, rating: OfstedRating | None) -> str:
        return self.group_colors[rating_group(rating)]


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarkerGroup:
    """A toggleable layer of schools sharing a rating group."""

    group: RatingGroup
    label: str
    color: str
    visible: bool
    schools: tuple[SchoolRecord, ...]


def group_schools(schools: Iterable[SchoolRecord], policy: StylingPolicy | None = None) -> tuple[MarkerGroup, ...]:
    """Partition *schools* into the three rating groups.

    Always returns one group per :class:`RatingGroup` in ``GROUP_ORDER``, even
    when a group is empty.  Each school lands in exactly one group.
    """
    policy = policy or StylingPolicy()
    buckets: dict[RatingGroup, list[SchoolRecord]] = {g: [] for g in GROUP_ORDER}
    for school in schools:
        buckets[rating_group(school.ofsted_rating)].append(school)

    return tuple(
        MarkerGroup(
            group=g,
            label=policy.group_labels[g],
            color=policy.group_colors[g],
            visible=policy.group_visible[g],
            schools=tuple(buckets[g]),
        )
        for g in GROUP_ORDER
    )


# ---------------------------------------------------------------------------
# Popups
# ---------------------------------------------------------------------------


def _display(value: object) -> str:
    if value is None or value == "":
        return "n/a"
    if isinstance(value, Enum):
        value = value.value
    return escape(str(value))


def popup_content(school: SchoolRecord) -> str:
    """Render the popup text block for a school marker."""
    pupils = f"{school.pupil_count:,}" if school.pupil_count is not None else None
    return (
        f"<b>{_display(school.name)}</b><br>"
        f"URN: {_display(school.urn)}<br>"
        f"LAESTAB: {_display(school.establishment_number)}<br>"
        f"Phase: {_display(school.phase)}<br>"
        f"Ofsted rating: {_display(school.ofsted_rating)}<br>"
        f"Pupils: {_display(pupils)}"
    )

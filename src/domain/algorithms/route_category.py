from __future__ import annotations

import re

from src.domain.models import RouteCategory

_LETTER_LINE = re.compile(r"^[A-Z] Line$", re.IGNORECASE)
_NINE_HUNDRED = re.compile(r"^9\d{2}$")
_EXPRESS_COLOR = "2B376E"


def route_category(short_name: str, color: str, route_type: str) -> RouteCategory:
    """Classify a route for UI grouping from its routes.txt fields."""

    name = short_name.strip()
    if _LETTER_LINE.match(name):
        return RouteCategory.RAPID_RIDE
    if route_type == "0" or "streetcar" in name.lower():
        return RouteCategory.STREETCAR
    if route_type == "4":
        return RouteCategory.FERRY
    if color.upper() == _EXPRESS_COLOR:
        return RouteCategory.EXPRESS
    if _NINE_HUNDRED.match(name) or not color:
        return RouteCategory.COMMUNITY
    return RouteCategory.LOCAL

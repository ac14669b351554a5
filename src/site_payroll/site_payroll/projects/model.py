from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..common.geo import GeoPoint


@dataclass(frozen=True)
class Project:
    """Domain entity: a construction site.

    ``location`` is the geofence reference point; attendance cannot be
    submitted while it is unset.
    """

    project_id: int
    project_name: str
    site_name: Optional[str]
    location: Optional[GeoPoint]
    site_manager_id: Optional[int] = None
    created_by: Optional[int] = None

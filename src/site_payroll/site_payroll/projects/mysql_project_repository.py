from __future__ import annotations

from typing import Optional

from ..common.geo import GeoPoint
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Project
from .repository import ProjectRepository


class MySQLProjectRepository(ProjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, project_id: int) -> Optional[Project]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT project_id, project_name, site_name, location_lng, location_lat,
                       site_manager_id, created_by
                FROM projects
                WHERE project_id=%s
                """,
                (project_id,),
            )
            r = fetchone(cur)
            if not r:
                return None

            location = None
            if r.get("location_lng") is not None and r.get("location_lat") is not None:
                location = GeoPoint(longitude=float(r["location_lng"]), latitude=float(r["location_lat"]))

            return Project(
                project_id=int(r["project_id"]),
                project_name=r["project_name"],
                site_name=r.get("site_name"),
                location=location,
                site_manager_id=r.get("site_manager_id"),
                created_by=r.get("created_by"),
            )

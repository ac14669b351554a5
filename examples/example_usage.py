"""Example: drive the service layer directly (no Flask).

Controllers are thin; the settlement rules live in the services.
"""

import importlib
from datetime import date

from config import get_settings_module

from src.site_payroll.site_payroll.container import build_container
from src.site_payroll.site_payroll.core.enums import Role
from src.site_payroll.site_payroll.users.model import Actor


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)
    manager = Actor(user_id=2, role=Role.SITE_MANAGER)

    summary = container.attendance_service.get_attendance_summary(3, 1, date(2026, 3, 1), date(2026, 3, 31))
    print(summary.present_days, summary.absent_days, summary.total_working_days)

    preview = container.payroll_service.preview_payroll(
        manager,
        user_id=3,
        project_id=1,
        period_start=date(2026, 3, 1),
        period_end=date(2026, 3, 31),
        allowances=[{"reason": "bonus", "amount": "200"}],
        overtime_hours=3,
    )
    print(preview.figures)


if __name__ == "__main__":
    main()

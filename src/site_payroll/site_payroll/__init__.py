"""Site payroll package.

Attendance ledger and payroll settlement core for construction sites,
organized by feature modules (attendance, payroll, projects, users) with a thin
Flask controller layer over service/repository layers.
"""

"""Attendance Portal package.

Feature modules (users, attendance, auth) each carry their own models,
repository interfaces, store adapters and a thin Flask controller layer.
"""

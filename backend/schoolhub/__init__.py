"""Application package for the school-management backend.

This package exposes the service, repository and model modules used by
the FastAPI application: timetable, posts, surveys and the personal
data export. Individual modules contain the concrete implementations
and documentation.
"""

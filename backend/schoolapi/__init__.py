"""Application package for the school notification and timetable backend.

This package exposes the repository, service and model modules used by
the FastAPI application. Individual modules contain the concrete
implementations and documentation.
"""

"""Application package for the pet clinic visits web application.

This package exposes the service, repository and model modules used by
the FastAPI application. It is intentionally lightweight; individual
modules contain the concrete implementations and documentation.
"""

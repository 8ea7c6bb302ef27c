"""Art Gallery Backend: FastAPI REST API layer.

This package contains the FastAPI application and the Pydantic
request/response models.

Modules
-------
main
    FastAPI application factory, route handlers, error mapping and the
    ``main()`` CLI entry point.
models
    Pydantic models shaping items and statistics on the wire.
"""

"""Prompt Canvas backend - FastAPI REST API layer.

This package contains the FastAPI application, the Pydantic wire models
shared with the canvas clients, and the upstream image/LLM providers.

Modules
-------
main
    FastAPI application with all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API request and response validation.
providers
    fal.ai image provider, OpenAI variation provider and the
    ``ImageService`` combining them.
"""

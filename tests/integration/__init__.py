"""Integration tests for components working together as a system.

Coverage:
    - Upload, conversion, polling and artifact download over HTTP
    - URL conversion intake and validation
    - Listing and bulk deletion
    - Live updates over SSE and WebSocket

Runs the real pipeline with AI disabled, so no API key is required.
"""

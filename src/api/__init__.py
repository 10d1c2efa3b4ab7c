"""FastAPI endpoints for the Braille conversion service.

HTTP, SSE and WebSocket routes with async request handling.

Endpoints:
    - GET /health: Service health status
    - POST /api/objects/upload, PUT/GET /objects/...: File upload and download
    - POST /api/conversions/upload, /api/conversions/url: Job intake
    - GET /api/conversions[/{id}]: Status polling and recent jobs
    - GET /api/conversions/{id}/text|download/{kind}: Artifacts
    - GET /api/conversions/{id}/events, WS /ws: Live updates
"""

"""Request-scoped access to the application's services."""

from fastapi import Request, WebSocket

from src.pipeline.orchestrator import ConversionOrchestrator


def get_orchestrator(request: Request) -> ConversionOrchestrator:
    return request.app.state.orchestrator


def get_socket_orchestrator(websocket: WebSocket) -> ConversionOrchestrator:
    return websocket.app.state.orchestrator

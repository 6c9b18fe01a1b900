from swipematch.api.v1.websocket.endpoints import router

__all__ = ["router"]

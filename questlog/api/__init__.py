from questlog.api.routes import router

__all__ = ["router"]

from questlog.services.coach import coach_service

__all__ = ["coach_service"]

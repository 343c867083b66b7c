from functools import lru_cache

from app.services.ask_service import AskService
from app.settings import get_settings


@lru_cache()
def get_ask_service() -> AskService:
    """
    Singleton-ish AskService for the FastAPI app.

    One instance per process, so the schema snapshot cache it owns is
    shared by every request.
    """
    settings = get_settings()
    return AskService(settings=settings)

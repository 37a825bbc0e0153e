from fastapi import Request

from app.services.cache import ResultCache


def get_result_cache(request: Request) -> ResultCache:
    """Return the process-wide result cache attached to the application."""
    return request.app.state.results

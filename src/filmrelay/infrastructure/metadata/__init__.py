from .cinemeta import DEFAULT_BASE_URL, CinemetaClient

__all__ = ["DEFAULT_BASE_URL", "CinemetaClient"]

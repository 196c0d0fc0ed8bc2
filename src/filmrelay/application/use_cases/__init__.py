from .catalog import CatalogUseCase
from .stream_resolution import StreamResolutionUseCase, guarded_call

__all__ = ["CatalogUseCase", "StreamResolutionUseCase", "guarded_call"]

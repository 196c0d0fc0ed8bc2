from .metadata import MetadataClientPort
from .source import SourceAdapterPort
from .source_registry import SourceRegistryPort

__all__ = [
    "MetadataClientPort",
    "SourceAdapterPort",
    "SourceRegistryPort",
]

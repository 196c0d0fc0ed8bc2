from .httpx_base import HttpxPluginBase, match_episode
from .loader import load_python_plugin
from .registry import PluginRegistry

__all__ = [
    "HttpxPluginBase",
    "PluginRegistry",
    "load_python_plugin",
    "match_episode",
]

"""Settlement-document field extraction across multimodal AI providers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("settlescan")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]

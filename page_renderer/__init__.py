"""Page Renderer: template resolution and error pages for HTML views"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("page-renderer")
except PackageNotFoundError:
    __version__ = "dev"

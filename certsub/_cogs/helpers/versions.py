"""
Detecting the project's own version.

The version is determined only once at startup when the code is loaded,
and is used in the ``User-Agent`` header of the API requests.
"""
import importlib.metadata
from typing import Optional

version: Optional[str] = None

try:
    name, *_ = __name__.split('.')  # usually "certsub", unless renamed/forked.
    version = importlib.metadata.version(name)
except importlib.metadata.PackageNotFoundError:
    pass  # running from the source tree, not installed.

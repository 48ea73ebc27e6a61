"""Installed distribution version.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

from importlib.metadata import PackageNotFoundError, version

__all__ = ("__version__",)

try:
    __version__: str = version("sentence-search")
except PackageNotFoundError:  # source checkout without install
    __version__ = "0.0.0+unknown"

"""CoinCap live asset snapshot proxy."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:  # pragma: no cover - fallback only triggers when metadata missing
    __version__: str = version('coincap-live')
except PackageNotFoundError:  # pragma: no cover
    __version__ = '0.1.0'

from .client import CoinCapClient  # noqa: E402
from .scheduler import RefreshScheduler  # noqa: E402
from .server import create_app, create_server, serve  # noqa: E402
from .state import SnapshotStore  # noqa: E402

__all__ = [
    'CoinCapClient',
    'RefreshScheduler',
    'SnapshotStore',
    'create_app',
    'create_server',
    'serve',
    '__version__',
]

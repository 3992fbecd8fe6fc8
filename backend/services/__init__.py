"""Services module - Business logic layer"""

from .asset_store import ThemeAssetClient
from .comparison_store import ComparisonStore
from .config_manager import ConfigManager
from .diff_engine import DiffEngine
from .orchestrator import ScanOrchestrator, ScanSession, ScanSettings
from .rate_limiter import RateLimiter, RetryPolicy
from .reconciler import AssetReconciler

__all__ = [
    "AssetReconciler",
    "ComparisonStore",
    "ConfigManager",
    "DiffEngine",
    "RateLimiter",
    "RetryPolicy",
    "ScanOrchestrator",
    "ScanSession",
    "ScanSettings",
    "ThemeAssetClient",
]

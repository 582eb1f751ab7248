"""Per-resource CloudAPI operations, mixed into ``CloudAPI``."""

from smartdc.resources.account import AccountResources
from smartdc.resources.analytics import AnalyticsResources
from smartdc.resources.images import ImageResources
from smartdc.resources.machines import MachineResources
from smartdc.resources.networks import NetworkResources

__all__ = [
    "AccountResources",
    "AnalyticsResources",
    "ImageResources",
    "MachineResources",
    "NetworkResources",
]

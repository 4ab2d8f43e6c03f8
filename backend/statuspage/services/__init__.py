"""Services for downsampling, status aggregation, and rollups."""
from .downsampler import downsample, DisplayBucket, StatIntegrityError
from .aggregate import evaluate, BadgeColors, BadgeStatus
from .rollup import RollupService

__all__ = [
    "downsample",
    "DisplayBucket",
    "StatIntegrityError",
    "evaluate",
    "BadgeColors",
    "BadgeStatus",
    "RollupService",
]

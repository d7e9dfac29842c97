"""Directory filtering and interaction engine for the MCF map"""

from .filter_pipeline import FilterPipeline, apply_filters
from .interaction import InteractionResolver
from .session import DirectorySession

__all__ = ["FilterPipeline", "apply_filters", "InteractionResolver", "DirectorySession"]

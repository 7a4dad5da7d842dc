"""CIRISUpdater - Dependency-aware image updates for running containers."""

__version__ = "1.0.0"

from .models import Container, UpdateParams, UpdateReport
from .sorter import DependencyCycleError
from .update import update

__all__ = ["Container", "DependencyCycleError", "UpdateParams", "UpdateReport", "update"]

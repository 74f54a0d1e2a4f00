"""
Exception hierarchy for partwise.

Configuration problems abort a run before the model store is touched.
Everything else is raised at the seam where one rule, item or export group
fails, and is caught by the caller that owns that unit of work.
"""

from typing import Optional


class PartwiseError(Exception):
    """Base class for all partwise errors."""


class RuleLoadError(PartwiseError):
    """The rule source is missing, unreadable or lacks mandatory columns."""


class ConfigError(PartwiseError):
    """Run settings are invalid."""


class PartitionError(PartwiseError):
    """A partition could not be found or created."""


class PartitionReadOnlyError(PartitionError):
    """An item's partition field cannot be written."""


class TransferError(PartwiseError):
    """
    Copying items into another store failed.

    `category` names the category of the offending item when the store can
    tell; transfer reporting buckets failures without one as "Unknown".
    """

    def __init__(self, message: str, category: Optional[str] = None, item_id: Optional[int] = None):
        super().__init__(message)
        self.category = category
        self.item_id = item_id


class ArtifactError(PartwiseError):
    """An output artifact could not be created, opened or saved."""


class PhaseOrderError(PartwiseError):
    """An assignment phase was entered out of order or re-entered."""

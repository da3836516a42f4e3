"""Abstract base class for best-effort drive metadata lookups."""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from drivetemp.models.readings import DriveInfo

logger = structlog.get_logger(__name__)


class DriveInfoLookup(ABC):
    """
    Resolves (hostname, serial_number) to device name and model.

    Callers treat both a None result and a raised exception as
    "no metadata available".
    """

    @abstractmethod
    async def get_drive_info(self, hostname: str, serial_number: str) -> Optional[DriveInfo]:
        """Return drive metadata, or None if unknown."""


async def resolve_drive_info(
    lookup: Optional[DriveInfoLookup], hostname: str, serial_number: str
) -> DriveInfo:
    """
    Best-effort metadata lookup that never raises.

    Returns an empty DriveInfo when there is no lookup, no match, or the
    lookup fails.
    """
    if lookup is None:
        return DriveInfo()
    try:
        info = await lookup.get_drive_info(hostname, serial_number)
    except Exception as e:
        logger.debug(
            "drive_info_lookup_failed",
            hostname=hostname,
            serial_number=serial_number,
            error=str(e),
        )
        return DriveInfo()
    return info or DriveInfo()

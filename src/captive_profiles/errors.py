"""Error types raised by the versioning and extraction core."""

from __future__ import annotations


class CaptiveProfilesError(Exception):
    """Base class for all recoverable errors raised by this package."""


class InvalidNameError(CaptiveProfilesError):
    """Vendor name is empty or blank."""


class NotFoundError(CaptiveProfilesError):
    """Requested version or lineage does not exist (or is not visible)."""


class AccessDeniedError(CaptiveProfilesError):
    """Operation is restricted to the version owner."""


class NoPriorRevisionError(CaptiveProfilesError):
    """Lineage has no versions to load a previous revision from."""


class MalformedImportError(CaptiveProfilesError):
    """Imported payload is neither a version document nor a bare snapshot."""


class InvalidFilterError(CaptiveProfilesError):
    """Extraction filter is syntactically invalid."""


class DecodeFailedError(CaptiveProfilesError):
    """Packet decoder failed or returned an unusable result."""


class DecodeTimeoutError(CaptiveProfilesError):
    """Packet decoder did not answer within the allotted time."""

"""Exception types raised by the scanner."""


class WsScannerError(Exception):
    """Base class for scanner errors."""


class FindingBuildError(WsScannerError, ValueError):
    """A finding was built without a required field."""


class MalformedMarkersError(WsScannerError, ValueError):
    """A fuzz template has an unbalanced § marker."""


class TransportError(WsScannerError):
    """The connection could not deliver a message."""

"""Exception types raised by hexagon binning and aggregation."""


class HexbinError(Exception):
    """Base class for all hexmeta errors."""


class InvalidParameterError(HexbinError, ValueError):
    """Resolution below 2 or otherwise malformed grid parameters."""


class DegenerateInputError(HexbinError, ValueError):
    """Point set with no points or a zero-width/zero-height bounding box."""


class ShapeMismatchError(HexbinError, ValueError):
    """Attribute or point-set length does not match a prior assignment."""


class TypeMismatchError(HexbinError, TypeError):
    """Action requested against an attribute of the wrong kind."""


class UnsupportedActionError(HexbinError, ValueError):
    """Action name outside the supported set."""


class UnknownColumnError(HexbinError, KeyError):
    """Requested attribute column does not exist in the host container."""


class UnknownEmbeddingError(HexbinError, KeyError):
    """Requested embedding does not exist in the host container."""


class HexbinNotComputedError(HexbinError, LookupError):
    """No cached hexagon binning exists for the requested embedding."""

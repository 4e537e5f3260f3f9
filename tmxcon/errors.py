"""
Exception types raised while importing TMX maps.
"""


class TmxImportError(Exception):
    """Base class for every error raised by the importer."""


class TmxFormatError(TmxImportError, ValueError):
    """The document is not a valid map (bad root, missing or non-numeric attribute...)."""


class MalformedPropertyError(TmxFormatError):
    """A <property> declaration is missing its name or value."""


class TmxNotImplementedError(TmxImportError, NotImplementedError):
    """The document asks for a valid but unsupported feature (compression, unknown encoding...)."""

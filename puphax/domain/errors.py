# puphax/domain/errors.py


class CatalogLoadError(RuntimeError):
    """The product table is missing or unreadable; no snapshot can be built."""


class UpstreamError(RuntimeError):
    """The live service could not produce a usable answer."""

"""Exceptions raised by the discovery pipeline."""


class MalformedDiscoveryError(ValueError):
    """Discovery payload without a usable device or sub-device identifier.

    The offending message is dropped; later messages are processed normally.
    """

class IPRangesError(Exception):
    """Base class for errors raised by the IP ranges directory."""


class MalformedCidr(IPRangesError, ValueError):
    pass


class MalformedAddress(IPRangesError, ValueError):
    pass


class DatasetUnparsable(IPRangesError):
    """The upstream document cannot be used at all."""


class FetchFailure(IPRangesError):
    """The upstream document could not be retrieved."""


class NotLoaded(IPRangesError):
    """A query arrived before the first successful refresh."""

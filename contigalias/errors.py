"""Exceptions raised while retrieving and parsing ENA assembly reports."""


class ContigAliasError(Exception):
    """Base class for contigalias errors."""


class TransferError(ContigAliasError):
    """Network or protocol failure talking to the archive."""


class DownloadFailedError(TransferError):
    """A download finished but the local copy is incomplete."""


class ReportNotFoundError(ContigAliasError):
    """The assembly directory or its sequence report does not exist upstream."""


class ReportParseError(ContigAliasError):
    """The sequence report content is malformed."""


class FetchCancelledError(ContigAliasError):
    """A cancel event stopped the retrieval."""


class ArtifactStorageError(ContigAliasError):
    """Local storage for downloaded reports is unavailable."""

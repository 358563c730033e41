class SongsheetError(Exception):
    """Base exception for songsheet."""


class TabIdError(SongsheetError):
    """Raised when no Ultimate Guitar tab id can be found in the input."""

    def __init__(self, source: str):
        self.source = source
        if source.strip():
            super().__init__(f"Unable to find a tab id in {source!r}")
        else:
            super().__init__("Provide a URL or tab id")


class IncompleteTabError(SongsheetError):
    """Raised when an imported tab lacks a title, artist or content."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Incomplete tab: {reason}")


class SongRecordError(SongsheetError):
    """Raised when a persisted song record cannot be read."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid song record: {reason}")

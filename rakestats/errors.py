"""Exceptions raised by the report pipeline."""


class RakeStatsError(Exception):
    """Base class for all report errors"""
    pass


class ConfigError(RakeStatsError):
    """Raised when the run configuration or CLI input is invalid"""
    pass


class StoreQueryError(RakeStatsError):
    """Raised when a partition cannot be read from the hand store"""

    def __init__(self, partition: str, message: str):
        super().__init__(f"{partition}: {message}")
        self.partition = partition


class DescriptiveFieldMismatch(RakeStatsError):
    """Raised in strict mode when grouped rows disagree on descriptive fields"""

    def __init__(self, key, field_name: str, first, other):
        super().__init__(
            f"Rows for {key} disagree on {field_name!r}: {first!r} != {other!r}"
        )
        self.key = key
        self.field_name = field_name
        self.first = first
        self.other = other


class ReportWriteError(RakeStatsError):
    """Raised when the CSV export cannot be written"""
    pass

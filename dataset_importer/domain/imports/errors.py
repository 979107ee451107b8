class CsvImportError(ValueError):
    """Base exception for CSV import problems detected before upload."""
    pass


class EmptyCsvError(CsvImportError):
    """Raised when the content yields no rows to import."""
    pass


class ColumnMappingError(CsvImportError):
    """Raised when a column mapping references unknown or overlapping columns."""
    pass

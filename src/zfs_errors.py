# --- START OF FILE zfs_errors.py ---

import config_manager
import constants


# --- Error Classes ---
class ZfsError(Exception):
    """Base class for ZFS related errors."""
    pass


class ZfsParsingError(ZfsError):
    """
    Raised when command output does not match the expected grammar.

    Carries the rule that failed and where: 1-based line and column plus the
    character offset into the parsed text.
    """
    def __init__(self, message, rule=None, line=None, column=None, offset=None, raw_line=None):
        super().__init__(message)
        self.rule = rule
        self.line = line
        self.column = column
        self.offset = offset
        self.raw_line = raw_line

    def __str__(self):
        details = []
        if self.rule: details.append(f"Rule: {self.rule}")
        if self.line is not None: details.append(f"Line: {self.line}")
        if self.column is not None: details.append(f"Column: {self.column}")
        if self.offset is not None: details.append(f"Offset: {self.offset}")
        if self.raw_line is not None:
            limit = _snippet_length()
            snippet = self.raw_line if len(self.raw_line) <= limit else self.raw_line[:limit] + "..."
            details.append(f"Problematic Line: '{snippet}'")
        details_str = " (" + ", ".join(details) + ")" if details else ""
        return f"{super().__str__()}{details_str}"


class ZfsConsistencyError(ZfsError):
    """
    Raised when a span accepted by the grammar cannot be turned into its
    domain value. This means the grammar and the builder disagree and is a
    library defect, not bad input.
    """
    def __init__(self, message, rule=None, raw_value=None):
        super().__init__(message)
        self.rule = rule
        self.raw_value = raw_value

    def __str__(self):
        details = []
        if self.rule: details.append(f"Rule: {self.rule}")
        if self.raw_value is not None: details.append(f"Value: {self.raw_value!r}")
        details_str = " (" + ", ".join(details) + ")" if details else ""
        return f"{super().__str__()}{details_str}"


def _snippet_length() -> int:
    limit = config_manager.get_setting("error_snippet_length", constants.DEFAULT_ERROR_SNIPPET_LENGTH)
    try:
        limit = int(limit)
        if limit <= 0: limit = constants.DEFAULT_ERROR_SNIPPET_LENGTH
    except (ValueError, TypeError):
        limit = constants.DEFAULT_ERROR_SNIPPET_LENGTH
    return limit


def line_and_column(text: str, offset: int) -> tuple[int, int]:
    """Returns the 1-based (line, column) of a character offset in text."""
    line = text.count('\n', 0, offset) + 1
    column = offset - (text.rfind('\n', 0, offset) + 1) + 1
    return line, column


def line_at(text: str, offset: int) -> str:
    """Returns the full line of text containing offset, without its newline."""
    start = text.rfind('\n', 0, offset) + 1
    end = text.find('\n', offset)
    if end == -1: end = len(text)
    return text[start:end]

# --- END OF FILE zfs_errors.py ---

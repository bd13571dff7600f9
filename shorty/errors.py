"""Error types raised by the shorty core"""

from typing import Optional


class ShortyError(Exception):
    """Base class for every error the CLI reports to the user"""


class NotFoundError(ShortyError):
    """An alias, category, template or backup does not exist"""


class ConflictError(ShortyError):
    """A name already exists, or a change would break a structural rule"""


class MalformedError(ShortyError):
    """Unparsable line, invalid alias definition or bad config value"""


class ParseError(MalformedError):
    """A line of the alias file does not follow the alias grammar"""

    def __init__(self, message: str, line_number: Optional[int] = None, line: Optional[str] = None):
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class InvalidPatternError(ShortyError):
    """A regular expression supplied by the user does not compile"""


class StorageIOError(ShortyError):
    """A filesystem operation failed"""

"""
Custom exception types for the RVJump assembler.
"""


class AssemblerError(Exception):
    """
    Base exception for assembler errors.

    Attributes:
        line_num: Line number in the original source text (if known)
        line_text: Source text of the offending line (if known)
        index: 1-based position in the filtered instruction stream at which
            assembly failed (if known)
    """

    def __init__(
        self,
        message: str,
        line_num: int = None,
        line_text: str = None,
        index: int = None,
    ):
        self.line_num = line_num
        self.line_text = line_text
        self.index = index
        self.reason = message
        if line_num is not None:
            if line_text:
                message = f"Line {line_num}: {message}\n  {line_text}"
            else:
                message = f"Line {line_num}: {message}"
        super().__init__(message)

    def locate(self, line_num: int, line_text: str = None, index: int = None) -> "AssemblerError":
        """Return a copy of this error attached to a source location."""
        return type(self)(self.reason, line_num, line_text, index)


class ParseError(AssemblerError):
    """Exception raised for parsing errors."""

    pass


class LabelSyntaxError(ParseError):
    """Exception raised for a malformed label definition."""

    pass


class EncodingError(AssemblerError):
    """Exception raised for instruction encoding errors."""

    pass


class SymbolError(AssemblerError):
    """Exception raised for symbol/label errors."""

    pass


class DuplicateLabelError(SymbolError):
    """Exception raised when a label is defined more than once."""

    pass


class UndefinedLabelError(SymbolError):
    """Exception raised when a branch references a label that was never defined."""

    pass


class InputError(AssemblerError):
    """Exception raised when the input cannot be read as source text."""

    pass


class ConfigError(Exception):
    """Raised when an assembler configuration is invalid."""

    pass

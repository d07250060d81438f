from __future__ import annotations


class ImageDiffError(Exception):
    """Base class for failures that abort a whole diff."""


class InvalidImageError(ImageDiffError, ValueError):
    pass


class OracleError(ImageDiffError, RuntimeError):
    def __init__(self, message: str, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self) -> str:
        message = super().__str__()
        if self.stderr:
            return f"{message}: {self.stderr.strip()}"
        return message


class PreconditionError(ImageDiffError, AssertionError):
    """An internal invariant about opcodes or regions does not hold."""


class ExtractionOutOfBoundsError(PreconditionError):
    pass

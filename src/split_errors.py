class SplitError(Exception):
    """Base class for every failure of a split run"""
    exit_code = 1


class UsageError(SplitError):
    """Bad or missing command line arguments"""
    exit_code = 2


class InputNotFoundError(SplitError):
    """Source file does not exist"""
    exit_code = 3


class InvalidCountError(SplitError):
    """Number of output files is not a positive integer"""
    exit_code = 4


class SplitIOError(SplitError, OSError):
    """Reading the input or creating/writing/closing an output file failed"""
    exit_code = 5


class MalformedRecordError(SplitError):
    """Input is not a well-formed JSON array of objects"""
    exit_code = 6

    def __init__(self, message, index=None):
        super().__init__(message)
        self.index = index


class SplitCancelled(SplitError):
    """Run stopped at a record boundary because cancellation was requested"""
    exit_code = 130

"""
Exceptions raised while reading FCS files.

All exceptions derive from `FCSError`. Each one also derives from the
builtin exception that describes the same condition, so code catching
``ValueError`` or ``KeyError`` around a read keeps working.

"""

class FCSError(Exception):
    """
    Base class for all errors raised by `FlowRead`.

    """
    pass

class FCSIOError(FCSError, OSError):
    """
    The FCS file is missing or could not be read.

    """
    pass

class InvalidHeaderError(FCSError, ValueError):
    """
    The HEADER segment is malformed or points outside of the file.

    """
    pass

class UnsupportedVersionError(FCSError, NotImplementedError):
    """
    The HEADER segment specifies an FCS version other than 3.0 or 3.1.

    """
    def __init__(self, version):
        self.version = version
        super(UnsupportedVersionError, self).__init__(
            "FCS version '{0}' not supported, must be either FCS3.0 or"
            " FCS3.1".format(version))

class InvalidTextSegmentError(FCSError, ValueError):
    """
    The TEXT segment cannot be split into keyword-value pairs.

    """
    pass

class MissingRequiredKeywordError(FCSError, KeyError):
    """
    A keyword required by the FCS standard is absent from TEXT.

    """
    def __init__(self, keyword):
        self.keyword = keyword
        super(MissingRequiredKeywordError, self).__init__(keyword)

    def __str__(self):
        # KeyError.__str__ would return the repr of the keyword
        return ("FCS file is missing required keyword {0} in its TEXT"
                " segment".format(self.keyword))

class InvalidMetadataError(FCSError, ValueError):
    """
    A keyword is present but its value is outside of the supported domain.

    """
    pass

class InvalidDataSegmentError(FCSError, ValueError):
    """
    The DATA segment cannot be decoded with the layout described in TEXT.

    """
    pass

class ColumnNotFoundError(FCSError, ValueError):
    """
    A requested channel is not one of the channels of a sample.

    """
    def __init__(self, column, msg=None):
        self.column = column
        if msg is None:
            msg = "{0} is not a valid channel name.".format(column)
        super(ColumnNotFoundError, self).__init__(msg)

class ResourceLimitError(FCSError):
    """
    The file or its event count exceeds the configured limits.

    """
    pass

"""
Validation of TEXT segment keywords and derivation of the DATA layout.

"""

import collections
import warnings

from FlowRead.exceptions import (MissingRequiredKeywordError,
                                 InvalidMetadataError,
                                 InvalidDataSegmentError,
                                 ResourceLimitError)

# Required non-parameter keywords of the FCS3.0 and FCS3.1 standards. $PAR is
# checked separately, before these, since the parameter keywords depend on it.
REQUIRED_KEYWORDS = (
    '$BEGINANALYSIS',   # byte offset to first byte of ANALYSIS segment
    '$BEGINDATA',       # byte offset to first byte of DATA segment
    '$BEGINSTEXT',      # byte offset to first byte of supplemental TEXT
    '$BYTEORD',         # byte order of the acquisition computer
    '$DATATYPE',        # type of data in DATA segment
    '$ENDANALYSIS',     # byte offset to last byte of ANALYSIS segment
    '$ENDDATA',         # byte offset to last byte of DATA segment
    '$ENDSTEXT',        # byte offset to last byte of supplemental TEXT
    '$MODE',            # data mode ('L' = list mode)
    '$NEXTDATA',        # byte offset to next data set in the file
    '$TOT',             # total number of events
    )

# Required keywords for each parameter n
REQUIRED_PARAMETER_KEYWORDS = (
    '$P{0}B',           # number of bits reserved for parameter n
    '$P{0}E',           # amplification type for parameter n
    '$P{0}N',           # short name for parameter n
    '$P{0}R',           # range for parameter n
    )

DATATYPES = ('I', 'F', 'D', 'A')
LITTLE_ENDIAN_BYTEORD = ('1,2,3,4', '1,2')
BIG_ENDIAN_BYTEORD = ('4,3,2,1', '2,1')

# Allowed bit widths for integer parameters
INTEGER_BIT_WIDTHS = (8, 16, 32, 64)

_ParameterDescriptor = collections.namedtuple(
    typename='_ParameterDescriptor',
    field_names=['index',
                 'name',
                 'long_name',
                 'bit_width',
                 'range',
                 'amplification_type',
                 'gain',
                 'datatype',
                 'byte_width',
                 'byte_offset'])

class ParameterDescriptor(_ParameterDescriptor):
    """
    Description of a single parameter (aka channel) of an FCS file.

    Attributes
    ----------
    index : int
        1-based parameter number (the `n` in $PnN).
    name : str
        Short name ($PnN).
    long_name : str or None
        Long name ($PnS), if specified.
    bit_width : int
        Number of bits per value ($PnB). For ASCII data, the number of
        characters per value.
    range : float
        Parameter range ($PnR).
    amplification_type : tuple
        (decades, offset) pair from $PnE. Decades equal to zero indicate a
        linear amplifier.
    gain : float or None
        Amplifier gain ($PnG), if specified. A nonzero gain scales integer
        values when the DATA segment is decoded.
    datatype : {'I', 'F', 'D', 'A'}
        Data type of this parameter. Equal to $DATATYPE unless overridden
        by $PnDATATYPE.
    byte_width : int
        Number of bytes occupied by one value in an event record.
    byte_offset : int
        Offset (in bytes) of this parameter within an event record.

    """
    __slots__ = ()

    @property
    def display_name(self):
        """
        Name used for the corresponding data column.

        The short name, followed by the long name in parentheses if a long
        name different from the short name exists.

        """
        if self.long_name and self.long_name != self.name:
            return '{0} ({1})'.format(self.name, self.long_name)
        return self.name

def _require(text, keyword):
    try:
        return text[keyword]
    except KeyError:
        raise MissingRequiredKeywordError(keyword)

def _parse_int(text, keyword, minimum=None):
    value = text[keyword]
    try:
        parsed = int(value)
    except ValueError:
        raise InvalidMetadataError("{0} should be an integer (detected"
            " {0} = '{1}')".format(keyword, value))
    if minimum is not None and parsed < minimum:
        raise InvalidMetadataError("{0} should be at least {1} (detected"
            " {0} = {2})".format(keyword, minimum, parsed))
    return parsed

def _parse_bit_width(keyword, value, datatype):
    """
    Interpret a $PnB value and return (bit width, byte width).

    """
    value = value.strip()
    if datatype == 'A' and value == '*':
        raise InvalidDataSegmentError("delimited ASCII data ({0} = '*') is"
            " not supported".format(keyword))
    try:
        bit_width = int(value)
    except ValueError:
        raise InvalidMetadataError("{0} should be an integer (detected"
            " {0} = '{1}')".format(keyword, value))

    if datatype == 'I':
        if bit_width not in INTEGER_BIT_WIDTHS:
            raise InvalidDataSegmentError("only byte aligned integer bit"
                " widths of 8, 16, 32 or 64 are supported (detected"
                " {0} = {1})".format(keyword, bit_width))
        return bit_width, bit_width//8
    elif datatype in ('F', 'D'):
        num_bits = 32 if datatype == 'F' else 64
        if bit_width != num_bits:
            raise InvalidDataSegmentError("{0} should be {1} if datatype ="
                " '{2}' (detected {0} = {3})".format(
                    keyword, num_bits, datatype, bit_width))
        return bit_width, bit_width//8
    else:
        # For ASCII data, $PnB is the number of characters per value
        if bit_width <= 0:
            raise InvalidDataSegmentError("{0} should be a positive number"
                " of characters (detected {0} = {1})".format(
                    keyword, bit_width))
        return bit_width, bit_width

def _parse_amplification_type(keyword, value):
    fields = value.split(',')
    if len(fields) != 2:
        raise InvalidMetadataError("{0} should contain two comma separated"
            " numbers (detected {0} = '{1}')".format(keyword, value))
    try:
        decades, offset = [float(f) for f in fields]
    except ValueError:
        raise InvalidMetadataError("{0} should contain two comma separated"
            " numbers (detected {0} = '{1}')".format(keyword, value))
    # Non-standard case: if the first number is nonzero and the second is
    # zero, the FCS3.1 standard recommends assuming the second value is one.
    if decades != 0.0 and offset == 0.0:
        offset = 1.0
    return (decades, offset)

class FCSMetadata(object):
    """
    Validated description of the DATA segment of an FCS file.

    `FCSMetadata` checks that all keywords required by the FCS3.0 and
    FCS3.1 standards are present, checks that their values are supported,
    and derives the layout of an event record in the DATA segment.

    Parameters
    ----------
    text : KeywordStore or dict
        Keyword-value entries from the TEXT segment.
    max_events : int, optional
        Maximum number of events ($TOT) accepted.

    Attributes
    ----------
    datatype : {'I', 'F', 'D', 'A'}
        Default data type of the DATA segment ($DATATYPE).
    byte_order : str
        $BYTEORD value.
    big_endian : bool
        Whether the DATA segment is big endian.
    mode : str
        Data mode ($MODE). Always 'L'.
    num_parameters : int
        Number of parameters per event ($PAR).
    num_events : int
        Number of events ($TOT).
    next_data : int
        Byte offset to the next data set in the file ($NEXTDATA).
    parameters : tuple of ParameterDescriptor
        Parameter descriptors, in the order of the DATA segment.
    record_size : int
        Size of an event record, in bytes.

    Raises
    ------
    MissingRequiredKeywordError
        If a required keyword is absent.
    InvalidMetadataError
        If $MODE is not 'L', $DATATYPE is not 'I', 'F', 'D' or 'A', or a
        numeric keyword cannot be interpreted.
    InvalidDataSegmentError
        If $BYTEORD is not big or little endian, or a parameter bit width
        is not supported for its datatype.
    ResourceLimitError
        If $TOT is larger than `max_events`.

    Warning
        If more than one data set is detected in the same file.

    """
    def __init__(self, text, max_events=None):

        # Presence of required keywords
        _require(text, '$PAR')
        D = _parse_int(text, '$PAR', minimum=1)

        for keyword in REQUIRED_KEYWORDS:
            _require(text, keyword)

        for p in range(1, D+1):
            for keyword in REQUIRED_PARAMETER_KEYWORDS:
                _require(text, keyword.format(p))

        # Channel-independent keywords
        self._mode = text['$MODE'].strip()
        if self._mode != 'L':
            raise InvalidMetadataError("only $MODE = 'L' is supported"
                " (detected $MODE = '{0}')".format(self._mode))

        self._datatype = text['$DATATYPE'].strip().upper()
        if self._datatype not in DATATYPES:
            raise InvalidMetadataError("only $DATATYPE = 'I', 'F', 'D', and"
                " 'A' are supported (detected $DATATYPE ="
                " '{0}')".format(self._datatype))

        self._num_events = _parse_int(text, '$TOT', minimum=0)
        if max_events is not None and self._num_events > max_events:
            raise ResourceLimitError("$TOT = {0} exceeds the maximum number"
                " of events ({1})".format(self._num_events, max_events))

        self._byte_order = text['$BYTEORD'].strip()
        if self._byte_order in BIG_ENDIAN_BYTEORD:
            self._big_endian = True
        elif self._byte_order in LITTLE_ENDIAN_BYTEORD:
            self._big_endian = False
        else:
            raise InvalidDataSegmentError("only big endian ($BYTEORD ="
                " '4,3,2,1' or '2,1') and little endian ($BYTEORD = '1,2,3,4'"
                " or '1,2') are supported (detected $BYTEORD ="
                " '{0}')".format(self._byte_order))

        self._next_data = _parse_int(text, '$NEXTDATA', minimum=0)
        if self._next_data:
            warnings.warn("detected (and ignoring) additional data set"
                " ($NEXTDATA = {0})".format(self._next_data))

        # Channel-dependent keywords
        parameters = []
        byte_offset = 0
        for p in range(1, D+1):
            datatype = self._datatype
            if '$P{0}DATATYPE'.format(p) in text:
                datatype = text['$P{0}DATATYPE'.format(p)].strip().upper()
                if datatype not in DATATYPES:
                    raise InvalidMetadataError("$P{0}DATATYPE should be 'I',"
                        " 'F', 'D', or 'A' (detected '{1}')".format(
                            p, datatype))

            bit_width, byte_width = _parse_bit_width(
                '$P{0}B'.format(p),
                text['$P{0}B'.format(p)],
                datatype)

            amplification_type = _parse_amplification_type(
                '$P{0}E'.format(p),
                text['$P{0}E'.format(p)])

            try:
                param_range = float(text['$P{0}R'.format(p)])
            except ValueError:
                param_range = float('nan')
            if not 0 < param_range < float('inf'):
                raise InvalidMetadataError("$P{0}R should be a positive"
                    " number (detected $P{0}R = '{1}')".format(
                        p, text['$P{0}R'.format(p)]))

            gain = text.get('$P{0}G'.format(p))
            if gain is not None:
                try:
                    gain = float(gain)
                except ValueError:
                    gain = float('nan')
                if not -float('inf') < gain < float('inf'):
                    raise InvalidMetadataError("$P{0}G should be a finite"
                        " number (detected $P{0}G = '{1}')".format(
                            p, text['$P{0}G'.format(p)]))

            long_name = text.get('$P{0}S'.format(p))
            if long_name is not None:
                long_name = long_name.strip() or None

            parameters.append(ParameterDescriptor(
                index=p,
                name=text['$P{0}N'.format(p)].strip(),
                long_name=long_name,
                bit_width=bit_width,
                range=param_range,
                amplification_type=amplification_type,
                gain=gain,
                datatype=datatype,
                byte_width=byte_width,
                byte_offset=byte_offset))
            byte_offset += byte_width

        self._parameters = tuple(parameters)
        self._record_size = byte_offset

    @property
    def datatype(self):
        return self._datatype

    @property
    def byte_order(self):
        return self._byte_order

    @property
    def big_endian(self):
        return self._big_endian

    @property
    def mode(self):
        return self._mode

    @property
    def num_parameters(self):
        return len(self._parameters)

    @property
    def num_events(self):
        return self._num_events

    @property
    def next_data(self):
        return self._next_data

    @property
    def parameters(self):
        return self._parameters

    @property
    def record_size(self):
        """
        Size of one event record in the DATA segment, in bytes.

        """
        return self._record_size

    @property
    def data_size(self):
        """
        Expected size of the DATA segment, in bytes.

        """
        return self._record_size * self._num_events

    def __repr__(self):
        return ('{0}(datatype={1!r}, big_endian={2!r}, num_parameters={3!r},'
                ' num_events={4!r})'.format(self.__class__.__name__,
                                            self._datatype,
                                            self._big_endian,
                                            self.num_parameters,
                                            self._num_events))

"""
Classes and utility functions for reading FCS files.

"""

import os
import re
import copy
import collections
import datetime
import logging
import warnings

import numpy as np

import FlowRead.transform
from FlowRead.exceptions import (FCSIOError,
                                 InvalidHeaderError,
                                 UnsupportedVersionError,
                                 InvalidTextSegmentError,
                                 MissingRequiredKeywordError,
                                 InvalidMetadataError,
                                 InvalidDataSegmentError,
                                 ColumnNotFoundError,
                                 ResourceLimitError)
from FlowRead.keywords import KeywordStore
from FlowRead.metadata import FCSMetadata

logger = logging.getLogger(__name__)

encoding = 'ISO-8859-1'

VALID_FCS_VERSIONS = ('FCS3.0', 'FCS3.1')

# Size of the HEADER segment, up to the end of the ANALYSIS offsets
HEADER_SIZE = 58

# Value written in the 8-byte HEADER fields by some writers when an offset
# does not fit. The real offset is then found in the TEXT segment.
OFFSET_OVERFLOW = 99999999

# Gain units ($PnG) per decade of integer scaling. A gain of zero leaves
# values unscaled.
GAIN_DECADE = 10.

# Default resource limits. Both can be overridden when creating an FCSFile.
MAX_FILE_SIZE = 2*1024**3   # bytes
MAX_EVENTS = 10**9

###
# Utility classes and functions for importing segments of FCS files
###

class ByteReader(object):
    """
    Bounded access to the contents of an FCS file held in memory.

    Offsets follow the FCS convention: `begin` and `end` both refer to
    bytes inside the range being read.

    Parameters
    ----------
    buf : bytes-like
        Contents of the whole file.

    """
    def __init__(self, buf):
        self._buf = memoryview(buf).cast('B')

    def __len__(self):
        return len(self._buf)

    @property
    def buffer(self):
        """
        Read-only view of the whole buffer.

        """
        return self._buf.toreadonly()

    def in_bounds(self, begin, end):
        """
        Whether bytes `begin` to `end` (inclusive) are inside the buffer.

        """
        return 0 <= begin <= end < len(self._buf)

    def read(self, begin, end):
        """
        Return a view of bytes `begin` to `end` (inclusive).

        Raises
        ------
        IndexError
            If the requested range is not inside the buffer.

        """
        if not self.in_bounds(begin, end):
            raise IndexError("byte range ({0}, {1}) outside of buffer of"
                " {2} bytes".format(begin, end, len(self._buf)))
        return self._buf[begin:end+1]

FCSHeader = collections.namedtuple(
    typename='FCSHeader',
    field_names=['version',
                 'text_begin',
                 'text_end',
                 'data_begin',
                 'data_end',
                 'analysis_begin',
                 'analysis_end'])

def read_fcs_header_segment(buf, begin=0):
    """
    Read HEADER segment of FCS file.

    Parameters
    ----------
    buf : ByteReader or bytes-like
        Buffer containing data to interpret as HEADER segment.
    begin : int
        Offset (in bytes) to first byte of HEADER segment in `buf`.

    Returns
    -------
    header : FCSHeader
        Version information and byte offset values of other FCS segments
        in the following order:
            - version : str
            - text_begin : int
            - text_end : int
            - data_begin : int
            - data_end : int
            - analysis_begin : int
            - analysis_end : int

    Raises
    ------
    InvalidHeaderError
        If the buffer is too short, the version tag is not of the form
        'FCSx.y', or an offset field is not a non-negative integer.
    InvalidHeaderError
        If the end offset of a segment is smaller than its begin offset.
    UnsupportedVersionError
        If the version is not FCS3.0 or FCS3.1. This is checked before any
        offset field is parsed.

    Notes
    -----
    Blank ANALYSIS segment offsets are converted to zeros.

    OTHER segment offsets are ignored.

    Offsets are returned as written. DATA and ANALYSIS offsets that are
    zero or equal to `OFFSET_OVERFLOW` must be looked up in the TEXT
    segment (see `FCSFile`).

    """
    if not isinstance(buf, ByteReader):
        buf = ByteReader(buf)

    if len(buf) < begin + HEADER_SIZE:
        raise InvalidHeaderError("HEADER segment should be at least {0}"
            " bytes long (detected {1} bytes)".format(
                HEADER_SIZE, len(buf) - begin))
    raw = bytes(buf.read(begin, begin + HEADER_SIZE - 1)).decode(encoding)

    version = raw[0:6]
    if re.match(r'FCS\d\.\d$', version) is None:
        raise InvalidHeaderError("unrecognized version tag '{0}'. File may be"
            " corrupted or not an FCS file.".format(version.rstrip()))
    if version not in VALID_FCS_VERSIONS:
        raise UnsupportedVersionError(version)

    field_values = [version]
    for i, field in enumerate(FCSHeader._fields[1:]):
        fv = raw[10 + 8*i:18 + 8*i]
        if field.startswith('analysis') and fv == ' '*8:
            field_values.append(0)
            continue
        try:
            value = int(fv)
        except ValueError:
            raise InvalidHeaderError("HEADER field {0} should be an integer"
                " (detected '{1}')".format(field, fv))
        if value < 0:
            raise InvalidHeaderError("HEADER field {0} should not be"
                " negative (detected {1})".format(field, value))
        field_values.append(value)

    header = FCSHeader._make(field_values)

    for segment in ('text', 'data', 'analysis'):
        seg_begin = getattr(header, segment + '_begin')
        seg_end = getattr(header, segment + '_end')
        if seg_end < seg_begin:
            raise InvalidHeaderError("{0} segment end offset ({1}) is smaller"
                " than its begin offset ({2})".format(
                    segment.upper(), seg_end, seg_begin))
    if header.text_begin == 0 and header.text_end == 0:
        raise InvalidHeaderError("TEXT segment offsets not specified")

    return header

def read_fcs_text_segment(buf, begin, end, delim=None, supplemental=False):
    """
    Read TEXT segment of FCS file.

    Parameters
    ----------
    buf : ByteReader or bytes-like
        Buffer containing data to interpret as TEXT segment.
    begin : int
        Offset (in bytes) to first byte of TEXT segment in `buf`.
    end : int
        Offset (in bytes) to last byte of TEXT segment in `buf`.
    delim : str, optional
        1-byte delimiter character which delimits key-value entries of
        TEXT segment. If None and ``supplemental==False``, will extract
        delimiter as first byte of TEXT segment.
    supplemental : bool, optional
        Flag specifying that segment is a supplemental TEXT segment, in
        which case a delimiter (``delim``) must be specified.

    Returns
    -------
    text : KeywordStore
        Key-value entries extracted from TEXT segment, in the order in
        which they appear.
    delim : str or None
        String containing delimiter or None if a supplemental TEXT segment
        is empty.

    Raises
    ------
    ValueError
        If supplemental TEXT segment (``supplemental==True``) but ``delim``
        is not specified.
    InvalidTextSegmentError
        If the segment lies outside of `buf`.
    InvalidTextSegmentError
        If primary TEXT segment (``supplemental==False``) is empty, does
        not start with delimiter, or has no key-value entries.
    InvalidTextSegmentError
        If a keyword or keyword value starts with the delimiter.
    InvalidTextSegmentError
        If odd number of keys + values detected (indicating an unpaired
        key or value).

    Warning
        If the segment ends with two delimiter characters.
    Warning
        If a keyword appears more than once. The first value is kept.

    Notes
    -----
    ANALYSIS segments and supplemental TEXT segments are parsed the same
    way, so this function could also be used to parse ANALYSIS segments.

    """
    if not isinstance(buf, ByteReader):
        buf = ByteReader(buf)

    if delim is None and supplemental:
        raise ValueError("must specify ``delim`` if reading supplemental"
                         + " TEXT segment")

    if not buf.in_bounds(begin, end):
        raise InvalidTextSegmentError("TEXT segment offsets ({0}, {1}) are"
            " outside of the file ({2} bytes)".format(begin, end, len(buf)))

    # The offsets are inclusive (meaning they specify first and last byte
    # WITHIN segment). This means the length of the segment is
    # ((end+1) - begin).
    raw = bytes(buf.read(begin, end)).decode(encoding)

    if not raw:
        if supplemental:
            return KeywordStore(), delim
        raise InvalidTextSegmentError("primary TEXT segment is empty")

    if delim is None:
        delim = raw[0]

    if not supplemental:
        # Check that the first character of the TEXT segment is equal to the
        # delimiter.
        if raw[0] != delim:
            raise InvalidTextSegmentError("primary TEXT segment should start"
                                          + " with delimiter")

    # Keyword values must be flanked by the delimiter character, but the
    # segment is not required to end with it. Retain everything before the
    # last instance of the delimiter.
    end_index = raw.rfind(delim)
    if supplemental and end_index == -1:
        # Only permitted for an empty supplemental TEXT segment
        return KeywordStore(), delim
    raw = raw[:end_index]

    pairs_list = raw.split(delim)

    ###
    # Reconstruct Keys and Values By Aggregating Escaped Delimiters
    ###
    # Delimiter characters are permitted in keywords and keyword values as
    # long as they are escaped by being immediately repeated. They are not
    # permitted as the first character of a keyword or keyword value, and
    # empty keywords or values are not permitted either. An escaped
    # delimiter therefore shows up as an empty element in ``pairs_list``.
    #
    # Scan from the end of the list, whose layout does not depend on whether
    # the segment is primary (starts with the delimiter) or supplemental.
    ###
    reconstructed_kv_accumulator = []
    idx = len(pairs_list) - 1
    while idx >= 0:
        if pairs_list[idx] != '':
            reconstructed_kv_accumulator.append(pairs_list[idx])
            idx = idx - 1
            continue

        # Count consecutive empty elements to determine how many escaped
        # delimiters exist and whether a boundary delimiter exists.
        num_empty_elements = 1
        idx = idx - 1
        while idx >= 0 and pairs_list[idx] == '':
            num_empty_elements = num_empty_elements + 1
            idx = idx - 1

        if idx < 0:
            # Rolled off the start of the list
            if num_empty_elements == 1:
                # The segment started with a single delimiter
                break
            if (num_empty_elements % 2) == 0 and not supplemental:
                # One empty element is the initial delimiter of a primary
                # segment. What remains is an unescaped delimiter or a first
                # keyword made only of delimiters.
                raise InvalidTextSegmentError("ill-formed TEXT segment")
            raise InvalidTextSegmentError("starting a TEXT segment keyword"
                                          + " with a delimiter is prohibited")

        num_delim = (num_empty_elements+1)//2
        boundary_delim = (num_empty_elements % 2) == 0

        if boundary_delim:
            # The boundary is on the right side, since keywords and values
            # cannot start with a delimiter. Append the escaped delimiters to
            # the element to the left and add it as a new entry.
            pairs_list[idx] = pairs_list[idx] + (num_delim*delim)
            reconstructed_kv_accumulator.append(pairs_list[idx])
        elif len(reconstructed_kv_accumulator) == 0:
            # A single empty element at the very end means the segment ends
            # with two delimiters (e.g. /k1/v1//). This is a known,
            # recoverable use case.
            warnings.warn("detected ill-formed TEXT segment (ends with two"
                          + " delimiter characters). Ignoring last delimiter"
                          + " character")
            reconstructed_kv_accumulator.append(pairs_list[idx])
        else:
            # Glue the elements on both sides of the escaped delimiters
            reconstructed_kv_accumulator[-1] = pairs_list[idx] + \
                (num_delim*delim) + reconstructed_kv_accumulator[-1]
        idx = idx - 1

    pairs_list_reconstructed = list(reversed(reconstructed_kv_accumulator))

    # List length should be even since all key-value entries should be pairs
    if len(pairs_list_reconstructed) % 2 != 0:
        raise InvalidTextSegmentError("odd # of (keys + values); unpaired key"
                                      + " or value")
    if not pairs_list_reconstructed and not supplemental:
        raise InvalidTextSegmentError("primary TEXT segment does not contain"
                                      + " any keyword")

    text = KeywordStore()
    for key, value in zip(pairs_list_reconstructed[0::2],
                          pairs_list_reconstructed[1::2]):
        if not text.add(key, value):
            warnings.warn("detected repeated keyword '{0}' in TEXT segment."
                          " Keeping first value '{1}'".format(
                              key, text[key]))

    return text, delim

def _data_field_format(param, big_endian):
    """
    Return the numpy format of one value of `param` in an event record.

    """
    order = '>' if big_endian else '<'
    if param.datatype == 'I':
        if param.byte_width not in (1, 2, 4, 8):
            raise InvalidDataSegmentError("unsupported integer width of {0}"
                " bytes for parameter {1}".format(param.byte_width,
                                                 param.index))
        return '{0}u{1}'.format(order, param.byte_width)
    elif param.datatype == 'F':
        return '{0}f4'.format(order)
    elif param.datatype == 'D':
        return '{0}f8'.format(order)
    elif param.datatype == 'A':
        return 'S{0}'.format(param.byte_width)
    else:
        raise InvalidDataSegmentError("unrecognized datatype (detected"
            " datatype='{0}')".format(param.datatype))

def read_fcs_data_segment(buf,
                          begin,
                          end,
                          parameters,
                          num_events,
                          big_endian):
    """
    Read DATA segment of FCS file.

    Parameters
    ----------
    buf : ByteReader or bytes-like
        Buffer containing data to interpret as DATA segment.
    begin : int
        Offset (in bytes) to first byte of DATA segment in `buf`.
    end : int
        Offset (in bytes) to last byte of DATA segment in `buf`. If both
        `begin` and `end` are zero, the DATA segment is empty.
    parameters : sequence of ParameterDescriptor
        Layout of the parameters (aka channels) in an event record, as
        derived by `FCSMetadata`.
    num_events : int
        Total number of events (see $TOT keyword from FCS standards).
    big_endian : bool
        Endianness of computer used to acquire data (see $BYTEORD
        keyword from FCS standards). True implies big endian; False
        implies little endian.

    Returns
    -------
    data : numpy array
        NxD float64 numpy array describing N cytometry events observing D
        data dimensions.

    Raises
    ------
    InvalidDataSegmentError
        If the DATA segment size does not match the number of events times
        the size of an event record, or it lies outside of `buf`.
    InvalidDataSegmentError
        If a parameter has an unsupported width or datatype, or an ASCII
        value is not a decimal integer.

    Notes
    -----
    Supported datatypes are 'I' (unsigned binary integer of 8, 16, 32 or
    64 bits), 'F' (single precision floating point), 'D' (double
    precision floating point), and 'A' (fixed-width ASCII integers).
    Parameters with different datatypes or widths can be mixed.

    Integer values are read as stored, including values at or above $PnR.
    If a nonzero gain ($PnG) is declared, values are scaled as
    ``offset + x * 10**(gain / GAIN_DECADE)``, with `offset` taken from
    $PnE. Otherwise, if $PnE indicates a logarithmic amplifier
    (``decades != 0``), values are converted to linear scale as
    ``offset * 10**(decades * x / range)``. Values of other integer
    parameters are not scaled.

    """
    if not isinstance(buf, ByteReader):
        buf = ByteReader(buf)

    num_params = len(parameters)
    record_size = sum(p.byte_width for p in parameters)

    # Offsets of zero indicate an empty DATA segment
    if begin == 0 and end == 0:
        segment_size = 0
    else:
        segment_size = (end+1) - begin

    # Sanity check that the total # of bytes that we're about to interpret
    # is exactly the # of bytes in the DATA segment.
    if record_size*num_events != segment_size:
        raise InvalidDataSegmentError("DATA size does not match expected"
            " array size (array size = {0} bytes, DATA segment size = {1}"
            " bytes)".format(record_size*num_events, segment_size))
    if segment_size and not buf.in_bounds(begin, end):
        raise InvalidDataSegmentError("DATA segment offsets ({0}, {1}) are"
            " outside of the file ({2} bytes)".format(begin, end, len(buf)))

    formats = [_data_field_format(p, big_endian) for p in parameters]

    data = np.empty((int(num_events), num_params), dtype=np.float64)
    if num_events == 0:
        return data

    # View the segment as an array of event records, with one field per
    # parameter placed at its byte offset. Each column of the output is
    # written directly from its field.
    names = ['p{0}'.format(p.index) for p in parameters]
    record_dtype = np.dtype({'names': names,
                             'formats': formats,
                             'offsets': [p.byte_offset for p in parameters],
                             'itemsize': record_size})
    records = np.frombuffer(buf.buffer,
                            dtype=record_dtype,
                            count=int(num_events),
                            offset=begin)

    for col, (name, param) in enumerate(zip(names, parameters)):
        values = records[name]
        if param.datatype == 'A':
            # Right-justified digits only. Signs, underscores and empty
            # fields are rejected.
            digits = [v.strip() for v in values]
            if not all(d.isdigit() for d in digits):
                raise InvalidDataSegmentError("ASCII values of parameter {0}"
                    " should be decimal integers".format(param.index))
            data[:, col] = np.fromiter((int(d) for d in digits),
                                       dtype=np.float64,
                                       count=len(digits))
        elif param.datatype == 'I':
            data[:, col] = values

            decades, offset = param.amplification_type
            column = data[:, col]
            if param.gain:
                np.multiply(column, 10.**(param.gain/GAIN_DECADE), out=column)
                np.add(column, offset, out=column)
            elif decades != 0:
                np.multiply(column, decades/param.range, out=column)
                np.power(10., column, out=column)
                np.multiply(column, offset, out=column)
        else:
            data[:, col] = values

    return data

def _read_file_bytes(infile, max_file_size):
    """
    Read all bytes of a path or binary file-like object.

    """
    if isinstance(infile, (str, os.PathLike)):
        try:
            with open(infile, 'rb') as f:
                size = os.fstat(f.fileno()).st_size
                if max_file_size is not None and size > max_file_size:
                    raise ResourceLimitError("file size of {0} bytes exceeds"
                        " the maximum of {1} bytes".format(
                            size, max_file_size))
                return f.read()
        except OSError as e:
            raise FCSIOError("unable to read FCS file {0} ({1})".format(
                infile, e)) from e

    try:
        infile.seek(0)
        if max_file_size is None:
            raw = infile.read()
        else:
            raw = infile.read(max_file_size + 1)
    except OSError as e:
        raise FCSIOError("unable to read FCS file ({0})".format(e)) from e
    if max_file_size is not None and len(raw) > max_file_size:
        raise ResourceLimitError("file size exceeds the maximum of {0}"
            " bytes".format(max_file_size))
    return raw

def _check_segment_bounds(reader, segment, begin, end, error):
    if begin == 0 and end == 0:
        return
    if not (0 <= begin <= end and reader.in_bounds(begin, end)):
        raise error("{0} segment offsets ({1}, {2}) are outside of the file"
            " ({3} bytes)".format(segment, begin, end, len(reader)))

###
# Classes
###

class FCSFile(object):
    """
    Class representing an FCS flow cytometry data file.

    This class parses a binary FCS file and exposes a read-only view
    of the HEADER, TEXT, and DATA segments via Python-friendly data
    structures.

    Parameters
    ----------
    infile : str, path-like, or binary file-like
        Reference to the associated FCS file.
    max_file_size : int, optional
        Maximum size of the file in bytes. None disables the check.
    max_events : int, optional
        Maximum number of events ($TOT). None disables the check.

    Attributes
    ----------
    infile : str or file-like
        Reference to associated FCS file.
    header : FCSHeader
        Version information and resolved byte offset values of the other
        FCS segments in the following order:
            - version : str
            - text_begin : int
            - text_end : int
            - data_begin : int
            - data_end : int
            - analysis_begin : int
            - analysis_end : int
    text : KeywordStore
        Keyword-value entries from TEXT segment and optional supplemental
        TEXT segment.
    metadata : FCSMetadata
        Validated description of the DATA segment.
    data : numpy array
        Unwriteable NxD float64 numpy array describing N cytometry events
        observing D data dimensions.

    Raises
    ------
    FCSIOError
        If the file cannot be opened or read.
    ResourceLimitError
        If the file is larger than `max_file_size` or has more events than
        `max_events`.
    InvalidHeaderError, UnsupportedVersionError
        If the HEADER segment is invalid or of an unsupported version.
    InvalidTextSegmentError, MissingRequiredKeywordError
        If the TEXT segment is ill-formed or lacks required keywords.
    InvalidMetadataError
        If a keyword has an unsupported value, or DATA or ANALYSIS offsets
        specified in the TEXT segment are invalid.
    InvalidDataSegmentError
        If the DATA segment cannot be decoded.

    Warning
        If more than one data set is detected in the same file.

    Notes
    -----
    The HEADER segment specifies the offsets of the TEXT, DATA and
    ANALYSIS segments. DATA and ANALYSIS offsets that do not fit in the
    HEADER are written as zeros (or as `OFFSET_OVERFLOW`), in which case
    they are taken from the $BEGINDATA/$ENDDATA and
    $BEGINANALYSIS/$ENDANALYSIS keywords. The ANALYSIS segment is checked
    to be inside the file, but its contents are not read.

    Only FCS3.0 and FCS3.1 files with one data set in list mode are
    supported.

    The whole file is read into memory and released once parsing is done.

    """
    def __init__(self, infile, max_file_size=MAX_FILE_SIZE,
                 max_events=MAX_EVENTS):

        self._infile = infile

        reader = ByteReader(_read_file_bytes(infile, max_file_size))
        logger.debug("read %d bytes from %s", len(reader), infile)

        header = read_fcs_header_segment(buf=reader)
        _check_segment_bounds(reader, 'TEXT', header.text_begin,
                              header.text_end, InvalidHeaderError)

        # Import primary TEXT segment and optional supplemental TEXT segment.
        # Supplemental TEXT segment offsets are always specified via required
        # key-value pairs in the primary TEXT segment.
        text, delim = read_fcs_text_segment(
            buf=reader,
            begin=header.text_begin,
            end=header.text_end,
            supplemental=False)

        # Absence of these required keywords is reported by FCSMetadata
        if '$BEGINSTEXT' in text and '$ENDSTEXT' in text:
            stext_begin, stext_end = self._keyword_offsets(
                text, '$BEGINSTEXT', '$ENDSTEXT')
        else:
            stext_begin, stext_end = 0, 0
        if stext_begin and stext_end:
            _check_segment_bounds(reader, 'supplemental TEXT', stext_begin,
                                  stext_end, InvalidMetadataError)
            stext = read_fcs_text_segment(
                buf=reader,
                begin=stext_begin,
                end=stext_end,
                delim=delim,
                supplemental=True)[0]
            ignored = text.merge(stext)
            if ignored:
                warnings.warn("ignoring supplemental TEXT keywords already"
                    " present in primary TEXT segment: {0}".format(
                        ", ".join(ignored)))

        self._text = text
        self._metadata = FCSMetadata(text, max_events=max_events)

        # Resolve DATA and ANALYSIS segment offsets. Offsets in the HEADER
        # segment are used unless they are missing or overflowed.
        data_begin, data_end = self._segment_offsets(
            reader, 'DATA', header.data_begin, header.data_end,
            '$BEGINDATA', '$ENDDATA')
        analysis_begin, analysis_end = self._segment_offsets(
            reader, 'ANALYSIS', header.analysis_begin, header.analysis_end,
            '$BEGINANALYSIS', '$ENDANALYSIS')

        self._header = header._replace(data_begin=data_begin,
                                       data_end=data_end,
                                       analysis_begin=analysis_begin,
                                       analysis_end=analysis_end)
        logger.debug("%s segments: %s", infile, self._header)

        # Import DATA segment
        self._data = read_fcs_data_segment(
            buf=reader,
            begin=data_begin,
            end=data_end,
            parameters=self._metadata.parameters,
            num_events=self._metadata.num_events,
            big_endian=self._metadata.big_endian)
        self._data.flags.writeable = False
        logger.debug("decoded DATA segment of %s with shape %s", infile,
                     self._data.shape)

    @classmethod
    def open(cls, infile, **kwargs):
        """
        Open and parse an FCS file.

        Equivalent to ``FCSFile(infile, **kwargs)``.

        """
        return cls(infile, **kwargs)

    @staticmethod
    def _keyword_offsets(text, begin_keyword, end_keyword):
        offsets = []
        for keyword in (begin_keyword, end_keyword):
            try:
                offsets.append(int(text[keyword]))
            except KeyError:
                raise MissingRequiredKeywordError(keyword)
            except ValueError:
                raise InvalidMetadataError("{0} should be an integer"
                    " (detected {0} = '{1}')".format(keyword, text[keyword]))
        return tuple(offsets)

    def _segment_offsets(self, reader, segment, header_begin, header_end,
                         begin_keyword, end_keyword):
        if (header_begin == 0 and header_end == 0) \
                or header_end == OFFSET_OVERFLOW:
            begin, end = self._keyword_offsets(self._text,
                                               begin_keyword,
                                               end_keyword)
            logger.debug("%s segment offsets taken from %s/%s: (%d, %d)",
                         segment, begin_keyword, end_keyword, begin, end)
            _check_segment_bounds(reader, segment, begin, end,
                                  InvalidMetadataError)
        else:
            begin, end = header_begin, header_end
            _check_segment_bounds(reader, segment, begin, end,
                                  InvalidHeaderError)
        return begin, end

    def read(self):
        """
        Return a new FlowSample with the contents of this file.

        Each call returns an independent sample with its own copy of the
        event data.

        """
        return FlowSample(self)

    # Expose attributes as read-only properties
    @property
    def infile(self):
        """
        Reference to the associated FCS file.

        """
        return self._infile

    @property
    def header(self):
        """
        ``FCSHeader`` containing version information and resolved byte
        offset values of other FCS segments.

        """
        return self._header

    @property
    def text(self):
        """
        ``KeywordStore`` of keyword-value entries from TEXT segment and
        optional supplemental TEXT segment.

        """
        return self._text

    @property
    def metadata(self):
        return self._metadata

    @property
    def data(self):
        """
        Unwriteable NxD numpy array describing N cytometry events
        observing D data dimensions.

        """
        return self._data

    @property
    def analysis_offsets(self):
        """
        (begin, end) byte offsets of the ANALYSIS segment, (0, 0) if absent.

        """
        return (self._header.analysis_begin, self._header.analysis_end)

    def __repr__(self):
        return str(self.infile)

class FlowSample(object):
    """
    Events and metadata of a flow cytometry sample.

    A `FlowSample` holds an NxD float64 numpy array (`data`) representing
    N cytometry events with D channels, together with the metadata parsed
    from the FCS file. Columns can be accessed by channel name.

    Parameters
    ----------
    infile : str, path-like, binary file-like, or FCSFile
        FCS file to load, or an already parsed `FCSFile`.
    **kwargs
        Passed to `FCSFile` if `infile` is not an `FCSFile`.

    Attributes
    ----------
    infile : str or file-like
        Reference to associated FCS file.
    text : KeywordStore
        Keyword-value entries from the TEXT segment.
    metadata : FCSMetadata
        Validated description of the DATA segment.
    data : numpy array
        NxD float64 array of events. Writeable, and owned by this sample.
    channels : tuple of str
        Display name of each channel.
    machine, volume, begin_time, end_time, date, source_filename : str
        Values of the $CYT, $VOL, $BTIM, $ETIM, $DATE and $FIL keywords,
        or None if not present.
    acquisition_start_time, acquisition_end_time : datetime or time
        Parsed acquisition start and end times, or None.

    Notes
    -----
    The display name of a channel is its short name ($PnN), followed by
    its long name ($PnS) in parentheses if a different long name exists.
    Channels can be referred to by display name, short name, or index.

    Examples
    --------
    >>> s = FlowRead.io.FCSFile.open('sample.fcs').read()
    >>> s.column_names()
    ['FSC-A', 'SSC-A', 'FL1-A (GFP)']
    >>> s.arcsinh_transform(5.0, ['FL1-A (GFP)'])
    >>> s[:, 'FSC-A']
    array([...])

    """
    def __init__(self, infile, **kwargs):
        if isinstance(infile, FCSFile):
            fcs_file = infile
        else:
            fcs_file = FCSFile(infile, **kwargs)

        self._infile = fcs_file.infile
        self._header = fcs_file.header
        self._text = fcs_file.text
        self._metadata = fcs_file.metadata

        # Private, writeable copy of the event data
        self._data = np.array(fcs_file.data, dtype=np.float64)

        self._channels = tuple(p.display_name
                               for p in self._metadata.parameters)
        self._short_names = tuple(p.name for p in self._metadata.parameters)

        # Acquisition date and times
        acquisition_date = self._parse_date_string(self.date)
        acquisition_start_time = self._parse_time_string(self.begin_time)
        acquisition_end_time = self._parse_time_string(self.end_time)
        if acquisition_date is not None:
            if acquisition_start_time is not None:
                acquisition_start_time = datetime.datetime.combine(
                    acquisition_date,
                    acquisition_start_time)
            if acquisition_end_time is not None:
                acquisition_end_time = datetime.datetime.combine(
                    acquisition_date,
                    acquisition_end_time)
        self._acquisition_start_time = acquisition_start_time
        self._acquisition_end_time = acquisition_end_time

    ###
    # Properties
    ###

    @property
    def infile(self):
        return self._infile

    @property
    def header(self):
        return self._header

    @property
    def text(self):
        return self._text

    @property
    def metadata(self):
        return self._metadata

    @property
    def data(self):
        """
        NxD float64 numpy array of events.

        """
        return self._data

    @property
    def channels(self):
        return self._channels

    @property
    def shape(self):
        return self._data.shape

    @property
    def num_events(self):
        return self._data.shape[0]

    @property
    def num_parameters(self):
        return self._data.shape[1]

    @property
    def machine(self):
        return self._text.get('$CYT')

    @property
    def volume(self):
        return self._text.get('$VOL')

    @property
    def begin_time(self):
        return self._text.get('$BTIM')

    @property
    def end_time(self):
        return self._text.get('$ETIM')

    @property
    def date(self):
        return self._text.get('$DATE')

    @property
    def source_filename(self):
        return self._text.get('$FIL')

    @property
    def acquisition_start_time(self):
        """
        Acquisition start time, as ``datetime`` if $DATE is available,
        ``time`` if not, or None if $BTIM is absent or unparseable.

        """
        return self._acquisition_start_time

    @property
    def acquisition_end_time(self):
        """
        Acquisition end time, as ``datetime`` if $DATE is available,
        ``time`` if not, or None if $ETIM is absent or unparseable.

        """
        return self._acquisition_end_time

    ###
    # Column access
    ###

    def column_names(self):
        """
        Return the display names of all channels, in DATA segment order.

        """
        return list(self._channels)

    def channel_labels(self, channels=None):
        """
        Get the long name ($PnS) of the specified channel(s).

        Parameters
        ----------
        channels : int, str, list of int, list of str
            Channel(s) for which to get the label. If None, return a list
            with the label of all channels.

        Returns
        -------
        str or None, or list of str or None
            Label of the specified channel(s), None if not specified.

        """
        labels = [p.long_name for p in self._metadata.parameters]
        if channels is None:
            return labels
        idx = self._name_to_index(channels)
        if isinstance(idx, list):
            return [labels[i] for i in idx]
        return labels[idx]

    def column(self, channel):
        """
        Return a view of the events of one channel.

        Raises
        ------
        ColumnNotFoundError
            If `channel` is not a channel of this sample.

        """
        return self._data[:, self._name_to_index(channel)]

    def column_data(self):
        """
        Return one view per channel, in the order of `column_names()`.

        Each view has length `num_events`. Together with `column_names()`,
        this is what a dataframe constructor needs.

        """
        return [self._data[:, i] for i in range(self._data.shape[1])]

    def arcsinh_transform(self, scale, columns):
        """
        Apply ``asinh(x / scale)`` in place to the specified columns.

        Parameters
        ----------
        scale : float
            Cofactor dividing the data before the transformation. Should
            be positive.
        columns : str, int, or iterable of str or int
            Channels to transform. A channel named more than once, or by
            both its display and short name, is transformed once.

        Raises
        ------
        ColumnNotFoundError
            If one of `columns` is not a channel of this sample. No column
            is modified in this case.
        ValueError
            If `scale` is not a positive finite number.

        Notes
        -----
        NaN values remain NaN. Transforming a column twice applies the
        function twice.

        """
        FlowRead.transform.to_arcsinh(self,
                                      channels=columns,
                                      scale=scale,
                                      copy=False)

    def copy(self):
        """
        Return a copy of this sample with its own event data.

        """
        new_sample = copy.copy(self)
        new_sample._data = self._data.copy()
        return new_sample

    # Helper functions
    @staticmethod
    def _parse_time_string(time_str):
        """
        Get a datetime.time object from a string time representation.

        The start and end of acquisition are stored in the optional keyword
        parameters $BTIM and $ETIM. The following formats are used
        according to the FCS standard:
            - FCS 2.0: 'hh:mm:ss'
            - FCS 3.0: 'hh:mm:ss[:tt]', where 'tt' is optional, and
              represents fractional seconds in 1/60ths.
            - FCS 3.1: 'hh:mm:ss[.cc]', where 'cc' is optional, and
              represents fractional seconds in 1/100ths.

        Parameters
        ----------
        time_str : str, or None
            String representation of time, or None.

        Returns
        -------
        t : datetime.time, or None
            Time parsed from `time_str`. If parsing was not possible,
            return None. If `time_str` is None, return None

        """
        if time_str is None:
            return None

        time_l = time_str.strip().split(':')
        if len(time_l) == 3:
            # 'hh:mm:ss' or 'hh:mm:ss.cc'
            fmt = '%H:%M:%S.%f' if '.' in time_l[2] else '%H:%M:%S'
            try:
                return datetime.datetime.strptime(
                    ':'.join(time_l), fmt).time()
            except ValueError:
                return None
        elif len(time_l) == 4:
            # 'hh:mm:ss:tt', with 'tt' in 1/60ths of a second
            try:
                microseconds = int(float(time_l[3])*1e6/60)
                t = datetime.datetime.strptime(':'.join(time_l[:3]),
                                               '%H:%M:%S').time()
                return t.replace(microsecond=microseconds)
            except ValueError:
                return None
        return None

    @staticmethod
    def _parse_date_string(date_str):
        """
        Get a datetime.date object from a string date representation.

        The FCS standard includes an optional keyword parameter $DATE in
        which the acquistion date is stored. In FCS 2.0, the date is saved
        as 'dd-mmm-yy', whereas in FCS 3.0 and 3.1 the date is saved as
        'dd-mmm-yyyy'. A couple of nonstandard formats are also accepted.

        Returns
        -------
        t : datetime.date, or None
            Date parsed from `date_str`. If parsing was not possible,
            return None. If `date_str` is None, return None

        """
        if date_str is None:
            return None

        for fmt in ('%d-%b-%y', '%d-%b-%Y', '%y-%b-%d', '%Y-%b-%d'):
            try:
                return datetime.datetime.strptime(date_str.strip(),
                                                  fmt).date()
            except ValueError:
                pass
        return None

    def _name_to_index(self, channels):
        """
        Return the channel indices for the specified channel names.

        Names are matched against display names first, then against short
        names. Integers are returned unmodified if they are within the
        range of ``self.channels``.

        Parameters
        ----------
        channels : int or str or list of int or list of str
            Name(s) of the channel(s) of interest.

        Returns
        -------
        int or list of int
            Numerical index(ces) of the specified channels.

        Raises
        ------
        ColumnNotFoundError
            If a name or index does not correspond to a channel.

        """
        if hasattr(channels, '__iter__') and not isinstance(channels, str):
            return [self._name_to_index(ch) for ch in channels]

        if isinstance(channels, str):
            if channels in self._channels:
                return self._channels.index(channels)
            if channels in self._short_names:
                return self._short_names.index(channels)
            raise ColumnNotFoundError(channels)

        if isinstance(channels, (int, np.integer)):
            if -len(self._channels) <= channels < len(self._channels):
                return int(channels)
            raise ColumnNotFoundError(channels, "index out of range")

        raise TypeError("input argument should be an integer, string or "
            "list of integers or strings")

    # Functions overridden to allow string-based indexing.

    def __getitem__(self, key):
        """
        Get an element or elements of the event data.

        If `key` is a 2-tuple, its second element can be a channel name or
        a list of channel names, which are converted to indices before
        indexing `data`.

        """
        if isinstance(key, tuple) and len(key) == 2 \
                and key[1] is not None and not isinstance(key[1], slice):
            key = (key[0], self._name_to_index(key[1]))
        return self._data[key]

    def __len__(self):
        return self._data.shape[0]

    def __str__(self):
        """
        Return name of FCS file.

        """
        return os.path.basename(str(self.infile))

    def __repr__(self):
        return '{0}({1!r}, shape={2})'.format(self.__class__.__name__,
                                             str(self),
                                             self._data.shape)

"""
Functions for transforming flow cytometry data

All transformations are of the following form::

    data_t = transform(data, channels, *args, **kwargs):

where `data` and `data_t` are NxD FlowSample objects or numpy arrays,
representing N events with D channels, `channels` indicate the channels in
which to apply the transformation, and `args` and `kwargs` are
transformation-specific parameters. Each transformation function can apply
its own restrictions or defaults on `channels`.

By default `data` is copied. With ``copy=False``, the selected columns of
`data` are overwritten and `data` itself is returned.

"""

import numpy as np

def transform(data, channels, transform_fxn, def_channels=None, copy=True):
    """
    Apply some transformation function to flow cytometry data.

    This function is a template transformation function, intended to be
    used by other specific transformation functions. It performs basic
    checks on `channels` and `data`, and then applies `transform_fxn` to
    each of the specified channels.

    Parameters
    ----------
    data : FlowSample or numpy array
        NxD flow cytometry data where N is the number of events and D is
        the number of parameters (aka channels).
    channels : int, str, list of int, list of str, optional
        Channels on which to perform the transformation. If `channels` is
        None, use def_channels. A channel specified more than once is
        transformed once.
    transform_fxn : function
        Function that performs the actual transformation on a 1D array of
        events.
    def_channels : int, str, list of int, list of str, optional
        Default set of channels in which to perform the transformation.
        If `def_channels` is None, use all channels.
    copy : bool, optional
        Whether to transform a copy of `data`. If False, `data` should
        contain float64 values and its columns are overwritten.

    Returns
    -------
    data_t : FlowSample or numpy array
        NxD transformed flow cytometry data.

    Raises
    ------
    ColumnNotFoundError
        If `data` is a FlowSample and one of `channels` is not one of its
        channels. `data` is not modified in this case.
    ValueError
        If ``copy=False`` and `data` does not hold float64 values.

    """
    # Default
    if channels is None:
        if def_channels is None:
            channels = range(data.shape[1])
        else:
            channels = def_channels

    # Convert channels to iterable
    if not (hasattr(channels, '__iter__') and not isinstance(channels, str)):
        channels = [channels]

    # Convert channel names to indices. This validates all channels before
    # any column is written.
    if hasattr(data, '_name_to_index'):
        channels = data._name_to_index(list(channels))
    else:
        channels = list(channels)

    if copy:
        if hasattr(data, '_name_to_index'):
            data_t = data.copy()
        else:
            data_t = np.array(data, dtype=np.float64)
    else:
        data_t = data

    array = data_t.data if hasattr(data_t, '_name_to_index') else data_t
    if array.dtype != np.float64:
        raise ValueError("in-place transformation requires float64 data"
            " (detected {0})".format(array.dtype))

    # Each column is transformed once, even if it is specified more than
    # once or by both its display and short name.
    D = array.shape[1]
    channels = [ch % D if -D <= ch < D else ch for ch in channels]
    channels = list(dict.fromkeys(channels))

    # Apply transformation, one column at a time
    for channel in channels:
        array[:, channel] = transform_fxn(array[:, channel])

    return data_t

def to_arcsinh(data, channels=None, scale=5.0, copy=True):
    """
    Apply the inverse hyperbolic sine transformation to flow cytometry data.

    The following operation is applied to each specified channel::

        y = arcsinh(x / scale)

    This transformation behaves linearly around zero and logarithmically
    for large values, which compresses the wide dynamic range of
    fluorescence data while preserving negative values.

    Parameters
    ----------
    data : FlowSample or numpy array
        NxD flow cytometry data where N is the number of events and D is
        the number of parameters (aka channels).
    channels : int, str, list of int, list of str, optional
        Channels on which to perform the transformation. If `channels` is
        None, perform transformation in all channels.
    scale : float, optional
        Cofactor dividing the data before applying arcsinh. Should be a
        positive number.
    copy : bool, optional
        Whether to transform a copy of `data` (default) or `data` itself.

    Returns
    -------
    FlowSample or numpy array
        NxD transformed flow cytometry data.

    Raises
    ------
    ValueError
        If `scale` is not a positive finite number.
    ColumnNotFoundError
        If `data` is a FlowSample and one of `channels` is not one of its
        channels.

    Notes
    -----
    NaN values remain NaN. The transformation is not idempotent: applying
    it twice transforms the data twice.

    """
    try:
        scale = float(scale)
    except (TypeError, ValueError):
        raise ValueError("scale should be a number (detected {0!r})".format(
            scale))
    if not 0 < scale < np.inf:
        raise ValueError("scale should be a positive finite number (detected"
            " {0})".format(scale))

    return transform(data,
                     channels,
                     lambda x: np.arcsinh(x/scale),
                     copy=copy)

"""
Copyright (c) 2020 University of Southern California
See full notice in LICENSE.md
Omid G. Sani and Maryam M. Shanechi
Shanechi Lab, University of Southern California

Tools for handling data that is either one array or a list of arrays (e.g. trials)
"""

import numpy as np


def isSegmented(Y):
    """Returns True if Y is a list/tuple of data segments (e.g. trials) rather than one array.
    A list of numbers or a list of rows (nested lists) is taken as a single time series.
    """
    if not isinstance(Y, (list, tuple)):
        return False
    if len(Y) == 0 or any(isinstance(YThis, np.ndarray) for YThis in Y):
        return True
    return any(np.ndim(YThis) >= 2 for YThis in Y)


def applyFuncIf(Y, func):
    """Applies a function on Y itself if Y is an array or on each element of Y if it is a list/tuple of arrays.

    Args:
        Y (np.array or list or tuple): input data or list of input data arrays.

    Returns:
        np.array or list or tuple: transformed Y or list of transformed arrays.
    """
    if Y is None:
        return None
    elif isSegmented(Y):
        return [func(YThis) for YThis in Y]
    else:
        return func(Y)


def transposeIf(Y):
    """Transposes Y itself if Y is an array or each element of Y if it is a list/tuple of arrays.

    Args:
        Y (np.array or list or tuple): input data or list of input data arrays.

    Returns:
        np.array or list or tuple: transposed Y or list of transposed arrays.
    """
    if Y is None:
        return None
    elif isinstance(Y, (list, tuple)):
        return [transposeIf(YThis) for YThis in Y]
    else:
        return Y.T


def asTimeSeries(Y):
    """Converts Y to a 2D float array with time as the first dimension.
    1D data is taken as a single-dimensional time series.

    Args:
        Y (array like): T x n data, or a length T vector.

    Returns:
        np.array: T x n array
    """
    if Y is None:
        return None
    Y = np.asarray(Y, dtype=float)
    if Y.ndim == 1:
        Y = Y[:, np.newaxis]
    return Y


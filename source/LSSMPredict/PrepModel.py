"""
Copyright (c) 2020 University of Southern California
See full notice in LICENSE.md
Omid G. Sani and Maryam M. Shanechi
Shanechi Lab, University of Southern California

Objects for applying (and undoing) the data preprocessing (mean removal and zscoring)
that a model was fitted with
"""
import abc

import numpy as np

from .tools import isSegmented


class Transform(abc.ABC):
    """Interface of the preprocessing objects that can be attached to a model
    (YPrepModel, ZPrepModel, UPrepModel).
    apply_inverse must exactly undo apply.
    """
    def apply(self, Y, time_first=True):
        """Applies the preprocessing on new data

        Args:
            Y (numpy array or list of arrays): Input data. First dimension must be time and the second
                                dimension is the data. Can be a list of arrays (e.g. trials) and
                                can be a single time step given as a 1D array.
            time_first (bool, optional): If False, will assume time is the second dimensions.
                                Defaults to True.
        """
        if isSegmented(Y):
            return [self._apply_any(YThis, time_first, self.apply_segment) for YThis in Y]
        else:
            return self._apply_any(Y, time_first, self.apply_segment)

    def apply_inverse(self, Y, time_first=True):
        """Applies inverse of the preprocessing on new data (i.e. undoes the preprocessing)

        Args:
            Y (numpy array or list of arrays): Input data. First dimension must be time and the second
                                dimension is the data. Can be a list of arrays (e.g. trials) and
                                can be a single time step given as a 1D array.
            time_first (bool, optional): If False, will assume time is the second dimensions.
                                Defaults to True.
        """
        if isSegmented(Y):
            return [self._apply_any(YThis, time_first, self.apply_inverse_segment) for YThis in Y]
        else:
            return self._apply_any(Y, time_first, self.apply_inverse_segment)

    @staticmethod
    def _apply_any(Y, time_first, func):
        if Y is None:
            return None
        Y = np.array(Y, dtype=float) # Always work on a copy
        if Y.ndim == 1: # A single time step
            Y2 = Y[np.newaxis, :] if time_first else Y[:, np.newaxis]
            return func(Y2, time_first).reshape(Y.shape)
        return func(Y, time_first)

    @abc.abstractmethod
    def apply_segment(self, Y, time_first=True):
        """Applies the preprocessing on a 2D array (never modifies Y in place)"""

    @abc.abstractmethod
    def apply_inverse_segment(self, Y, time_first=True):
        """Undoes the preprocessing on a 2D array (never modifies Y in place)"""


class IdentityPrepModel(Transform):
    """A preprocessing that does nothing. Equivalent to not having a preprocessing model."""
    def apply_segment(self, Y, time_first=True):
        return np.array(Y)

    def apply_inverse_segment(self, Y, time_first=True):
        return np.array(Y)


class PrepModel(Transform):
    """Describes a preprocessing model to change mean/std of a time-series and undo that
    """
    def __init__(self, mean=None, std=None, remove_mean=None, zscore=False):
        """
        Args:
            mean (numpy array, optional): mean of each data dimension. Defaults to None.
            std (numpy array, optional): std of each data dimension. Dimensions with
                        a std of 0 are not scaled. Defaults to None.
            remove_mean (bool, optional): If True, will remove the mean of data.
                        Defaults to True if a mean is given.
            zscore (bool, optional): If True, will divide the data by std to have
                        unit std in all dimensions. Defaults to False.
        """
        if remove_mean is None:
            remove_mean = mean is not None
        if remove_mean and mean is None:
            raise(ValueError('A mean must be provided to remove the mean.'))
        if zscore and std is None:
            raise(ValueError('A std must be provided to zscore.'))
        self.mean = None if mean is None else np.atleast_1d(np.array(mean, dtype=float)).flatten()
        self.std = None if std is None else np.atleast_1d(np.array(std, dtype=float)).flatten()
        if self.mean is not None and self.std is not None and self.mean.size != self.std.size:
            raise(ValueError('mean (size {}) and std (size {}) must have the same size.'.format(self.mean.size, self.std.size)))
        self.remove_mean = bool(remove_mean)
        self.zscore = bool(zscore)

    @classmethod
    def mean_removal(cls, mean):
        """Preprocessing that only removes the given mean"""
        return cls(mean=mean, remove_mean=True, zscore=False)

    @classmethod
    def zscoring(cls, mean, std):
        """Preprocessing that removes the given mean and divides by the given std"""
        return cls(mean=mean, std=std, remove_mean=True, zscore=True)

    def get_mean(self, time_first=True):
        """Returns the mean, but transposes it if needed

        Args:
            time_first (bool, optional): If true, will return the mean a row vector,
                        otherwise returns it as a column vector. Defaults to True.
        """
        if time_first:
            return self.mean[np.newaxis, :]
        else:
            return self.mean[:, np.newaxis]

    def get_std(self, time_first=True):
        """Returns the std, but transposes it if needed

        Args:
            time_first (bool, optional): If true, will return the std a row vector,
                        otherwise returns it as a column vector. Defaults to True.
        """
        if time_first:
            return self.std[np.newaxis, :]
        else:
            return self.std[:, np.newaxis]

    def apply_segment(self, Y, time_first=True):
        Y = np.array(Y, dtype=float)
        if self.remove_mean:
            Y = Y - self.get_mean(time_first)
        if self.zscore:
            okDims = self.std>0
            if time_first:
                Y[:, okDims] = Y[:, okDims] / self.get_std(time_first)[:, okDims]
            else:
                Y[okDims, :] = Y[okDims, :] / self.get_std(time_first)[okDims, :]
        return Y

    def apply_inverse_segment(self, Y, time_first=True):
        Y = np.array(Y, dtype=float)
        if self.zscore:
            okDims = self.std>0
            if time_first:
                Y[:, okDims] = Y[:, okDims] * self.get_std(time_first)[:, okDims]
            else:
                Y[okDims, :] = Y[okDims, :] * self.get_std(time_first)[okDims, :]
        if self.remove_mean:
            Y = Y + self.get_mean(time_first)
        return Y

    def __repr__(self):
        return 'PrepModel(remove_mean={}, zscore={}, dim={})'.format(
            self.remove_mean, self.zscore,
            self.mean.size if self.mean is not None else (self.std.size if self.std is not None else None))

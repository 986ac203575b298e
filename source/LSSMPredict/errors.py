"""
Copyright (c) 2020 University of Southern California
See full notice in LICENSE.md
Omid G. Sani and Maryam M. Shanechi
Shanechi Lab, University of Southern California

Errors raised when a model or the data given to it cannot be used for prediction
"""


class LSSMPredictError(Exception):
    """Base class for all prediction configuration errors"""


class MissingMandatoryParameter(LSSMPredictError, KeyError):
    """A parameter that the Kalman predictor cannot do without (A, K or Cy) is absent"""

    def __str__(self):
        # KeyError would otherwise quote the message
        return Exception.__str__(self)


class DimensionMismatch(LSSMPredictError, ValueError):
    """A model matrix or a signal has a size inconsistent with the rest of the model"""


class ShapeMismatch(LSSMPredictError, ValueError):
    """The observation and input signals do not describe the same trials/time steps"""

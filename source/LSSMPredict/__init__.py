"""
Copyright (c) 2020 University of Southern California
See full notice in LICENSE.md
Omid G. Sani and Maryam M. Shanechi
Shanechi Lab, University of Southern California
"""

from .prediction import predict
from .LSSM import LSSM
from .PrepModel import PrepModel, IdentityPrepModel, Transform
from .errors import LSSMPredictError, MissingMandatoryParameter, DimensionMismatch, ShapeMismatch

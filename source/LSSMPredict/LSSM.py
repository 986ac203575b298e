"""
Copyright (c) 2020 University of Southern California
See full notice in LICENSE.md
Omid G. Sani and Maryam M. Shanechi
Shanechi Lab, University of Southern California

An LSSM object for keeping the parameters of an identified model and using its
steady state Kalman filter to predict latent states, observations and behavior
"""

import copy
import logging

import numpy as np
from tqdm import tqdm

from .errors import MissingMandatoryParameter, DimensionMismatch, ShapeMismatch
from .tools import asTimeSeries, isSegmented


logger = logging.getLogger(__name__)

# Alternative names of each parameter in models produced by different
# versions of the identification code, in order of priority
PARAM_ALIASES = {
    "A": ["a", "A"],
    "K": ["k", "K"],
    "Cy": ["c", "C", "Cy"],
    "Cz": ["Cz"],
    "B": ["b", "B"],
    "Dy": ["d", "D", "Dy"],
    "Dz": ["dz", "Dz"],
}
MANDATORY_PARAMS = ["A", "K", "Cy"]
PREP_MODEL_PARAMS = ["YPrepModel", "ZPrepModel", "UPrepModel"]
LEGACY_READOUT_PARAM = "T"


def dict_get_either(d, fieldNames, defaultVal=None):
    """Retrieves the first found key from a list of possible keys in a dictionary.

    Args:
        d (dict): The dictionary to search.
        fieldNames (list): List of keys to look for.
        defaultVal (any, optional): Value to return if no key is found. Defaults to None.

    Returns:
        any: The value corresponding to the first found key, or defaultVal.
    """
    for f in fieldNames:
        if f in d:
            return d[f]
    return defaultVal


def record_get_either(record, fieldNames, defaultVal=None):
    """Same as dict_get_either, but the record can also be any object carrying
    the parameters as attributes (e.g. an LSSM from a PSID package or a loaded struct).
    """
    if isinstance(record, dict):
        return dict_get_either(record, fieldNames, defaultVal)
    for f in fieldNames:
        if hasattr(record, f):
            return getattr(record, f)
    return defaultVal


def isEmpty(val):
    """Returns True if a parameter value should be taken as absent"""
    if val is None:
        return True
    if isinstance(val, (np.ndarray, list, tuple)):
        return np.size(val) == 0
    return False


def asParamMatrix(val, name, nRows=None, nCols=None):
    """Converts a parameter value to a read-only 2D float array.

    Scalars become 1x1 matrices. A 1D vector becomes a column if that is the
    orientation matching the expected size, otherwise a row.

    Args:
        val (array like): parameter value
        name (str): name of the parameter, used in errors
        nRows (int, optional): expected number of rows if already known. Defaults to None.
        nCols (int, optional): expected number of columns if already known. Defaults to None.

    Returns:
        np.ndarray or None: the matrix, or None if the value is absent
    """
    if isEmpty(val):
        return None
    try:
        M = np.array(val, dtype=float)
    except (TypeError, ValueError) as e:
        msg = "Parameter {} is not a numeric matrix ({})".format(name, e)
        logger.error(msg)
        raise (DimensionMismatch(msg))
    if M.ndim == 0:
        M = M.reshape((1, 1))
    elif M.ndim == 1:
        if (nCols == 1 and (nRows is None or nRows == M.size)) or (
            nCols is None and nRows == M.size and M.size != 1
        ):
            M = M[:, np.newaxis]
        else:
            M = M[np.newaxis, :]
    elif M.ndim > 2:
        msg = "Parameter {} must be a matrix but has {} dimensions".format(name, M.ndim)
        logger.error(msg)
        raise (DimensionMismatch(msg))
    M.setflags(write=False)
    return M


def checkPrepModelDim(prepModel, dim, name):
    """Checks that the statistics kept in a preprocessing model (if any) have the expected size"""
    if prepModel is None:
        return
    for f in ["mean", "std"]:
        val = getattr(prepModel, f, None)
        if isinstance(val, np.ndarray) and val.size not in [0, dim]:
            msg = "{}.{} has {} elements, but the signal it applies to has {} dimensions".format(
                name, f, val.size, dim
            )
            logger.error(msg)
            raise (DimensionMismatch(msg))


class LSSM:
    """Linear State Space Model class in the steady state predictor form:
    x(k+1) = A x(k) + B u(k-1) + K (y(k) - Cy x(k) - Dy u(k-1))
    y(k)   = Cy x(k) + Dy u(k) + e(k)
    z(k)   = Cz x(k) + Dz u(k)
    The state update uses the input of the previous step (u(0) = 0), while the
    predicted y and z add the input of their own time step.

    Any of B, Dy, Cz and Dz can be absent (None), in which case the terms that
    depend on them are zero. YPrepModel, ZPrepModel and UPrepModel are optional
    preprocessing models (mean removal/zscoring) that were applied to y, z and u
    before the model was fitted.
    """

    def __init__(self, params=None, verbose=False):
        """Initializes the LSSM object.

        Args:
            params (dict or object): model parameters. Can use any of the supported
                alternative parameter names (see PARAM_ALIASES). Must have A, K and Cy.
            verbose (bool, optional): If True, will show progress bars. Defaults to False.
        """
        self.verbose = verbose
        self.setParams(params)

    @classmethod
    def from_params(cls, model, verbose=None):
        """Returns model itself if it is already an LSSM, otherwise builds an LSSM from it

        Args:
            model (LSSM or dict or object): the model
            verbose (bool, optional): If not None, the returned model will have this verbose flag.
                An existing LSSM with a different flag is copied rather than modified.

        Returns:
            LSSM: the model
        """
        if isinstance(model, cls):
            if verbose is None or bool(verbose) == model.verbose:
                return model
            model = copy.copy(model)  # Arrays are read-only, so they can be shared
            model.verbose = bool(verbose)
            return model
        return cls(params=model, verbose=bool(verbose))

    def setParams(self, params=None):
        """Sets the parameters of the LSSM, resolving alternative and legacy parameter
        names into the canonical ones (A, K, Cy, Cz, B, Dy, Dz), and validates their dimensions.

        Args:
            params (dict or object): parameters.
        """
        if params is None:
            params = {}
        vals = {p: record_get_either(params, aliases) for p, aliases in PARAM_ALIASES.items()}

        T = record_get_either(params, [LEGACY_READOUT_PARAM])
        if isEmpty(vals["Cz"]) and not isEmpty(T):  # For backwards compatibility
            T = np.atleast_2d(np.array(T, dtype=float))
            vals["Cz"] = T[1:, :].T
            logger.info(
                "Cz not provided, using the legacy readout T (dropping its first row) to get Cz"
            )

        for p in MANDATORY_PARAMS:
            if isEmpty(vals[p]):
                msg = "Model parameter {} (any of {}) is required for prediction but is missing".format(
                    p, PARAM_ALIASES[p]
                )
                logger.error(msg)
                raise (MissingMandatoryParameter(msg))

        A = asParamMatrix(vals["A"], "A")
        if A.shape[0] != A.shape[1]:
            self._dimError("A must be square but is {}".format(A.shape))
        nx = A.shape[0]
        Cy = asParamMatrix(vals["Cy"], "Cy", nCols=nx)
        ny = Cy.shape[0]
        K = asParamMatrix(vals["K"], "K", nRows=nx, nCols=ny)
        Cz = asParamMatrix(vals["Cz"], "Cz", nCols=nx)
        nz = Cz.shape[0] if Cz is not None else 0
        B = asParamMatrix(vals["B"], "B", nRows=nx)
        Dy = asParamMatrix(vals["Dy"], "Dy", nRows=ny)
        Dz = asParamMatrix(vals["Dz"], "Dz", nRows=nz if Cz is not None else None)

        self._checkShape("Cy", Cy, (None, nx))
        self._checkShape("K", K, (nx, ny))
        self._checkShape("Cz", Cz, (None, nx))
        self._checkShape("B", B, (nx, None))
        self._checkShape("Dy", Dy, (ny, None))
        if Cz is not None:
            self._checkShape("Dz", Dz, (nz, None))
        elif Dz is not None:
            logger.warning(
                "Model has Dz but no Cz. Behavior cannot be predicted without Cz, so Dz will be ignored."
            )

        inputDims = {n: M.shape[1] for n, M in [("B", B), ("Dy", Dy), ("Dz", Dz)] if M is not None}
        if len(set(inputDims.values())) > 1:
            self._dimError(
                "Input parameters disagree on the input dimension: {}".format(inputDims)
            )
        nu = list(inputDims.values())[0] if len(inputDims) > 0 else 0

        self.A, self.K, self.Cy, self.Cz = A, K, Cy, Cz
        self.B, self.Dy, self.Dz = B, Dy, Dz
        self.state_dim, self.output_dim = nx, ny
        self.behavior_dim, self.input_dim = nz, nu

        for p in PREP_MODEL_PARAMS:
            prepModel = record_get_either(params, [p])
            setattr(self, p, None if isEmpty(prepModel) else prepModel)
        checkPrepModelDim(self.YPrepModel, ny, "YPrepModel")
        if Cz is not None:
            checkPrepModelDim(self.ZPrepModel, nz, "ZPrepModel")
        if nu > 0:
            checkPrepModelDim(self.UPrepModel, nu, "UPrepModel")

    def _dimError(self, msg):
        logger.error(msg)
        raise (DimensionMismatch(msg))

    def _checkShape(self, name, M, expected):
        if M is None:
            return
        for ax, n in enumerate(expected):
            if n is not None and M.shape[ax] != n:
                self._dimError(
                    "{} must be of size {} but is {}".format(
                        name, tuple("*" if e is None else e for e in expected), M.shape
                    )
                )

    def getListOfParams(self):
        """Returns a dictionary of all model parameters under their canonical names.

        Returns:
            dict: Dictionary of parameters.
        """
        params = {p: getattr(self, p) for p in PARAM_ALIASES}
        params.update({p: getattr(self, p) for p in PREP_MODEL_PARAMS})
        return params

    def __repr__(self):
        return "LSSM(nx={}, ny={}, nz={}, nu={})".format(
            self.state_dim, self.output_dim, self.behavior_dim, self.input_dim
        )

    def checkDataDims(self, Y, U=None):
        """Checks that an observation (and input) time series can be used with this model

        Args:
            Y (np.ndarray): observation time series (time first).
            U (np.ndarray, optional): input time series (time first). Defaults to None.
        """
        if Y.ndim != 2 or Y.shape[1] != self.output_dim:
            self._dimError(
                "Observation must be T x ny with ny={}, but it is {}".format(self.output_dim, Y.shape)
            )
        if U is None:
            return
        if U.ndim != 2 or U.shape[0] != Y.shape[0]:
            msg = "Input (shape {}) must have the same number of samples as the observation (shape {})".format(
                U.shape, Y.shape
            )
            logger.error(msg)
            raise (ShapeMismatch(msg))
        if self.input_dim > 0 and U.shape[1] != self.input_dim:
            self._dimError(
                "Input must be T x nu with nu={}, but it is {}".format(self.input_dim, U.shape)
            )

    def kalman(self, Y, U=None):
        """Applies the steady state Kalman filter associated with the LSSM to some observation time-series
        The update that incorporates Y(i) uses the input of the previous step U(i-1), so
        the input terms are zero in the first update.

        Args:
            Y (np.ndarray): observation time series (time first).
            U (np.ndarray, optional): input time series (time first). Defaults to None.

        Returns:
            allXp (np.ndarray): one-step ahead predicted states (t|t-1). The first
                row is nan since there is no observation to predict it from.
        """
        Y = asTimeSeries(Y)
        U = asTimeSeries(U)
        self.checkDataDims(Y, U)
        useU = U is not None and self.input_dim > 0
        N = Y.shape[0]
        allXp = np.nan * np.ones((N, self.state_dim))  # X(i|i-1)
        Xp = np.zeros((self.state_dim, 1))  # Initial state
        uPrev = None  # Input of the previous step, enters the update together with Y(i)
        tqdm_disabled = not self.verbose
        for i in tqdm(range(N - 1), "Estimating latent states", disable=tqdm_disabled):
            thisY = np.array(Y[i, :][np.newaxis, :])
            if self.YPrepModel is not None:
                thisY = self.YPrepModel.apply(
                    thisY, time_first=True
                )  # Apply any mean removal/zscoring
            zi = np.array(thisY).T - self.Cy @ Xp  # Innovation Z(i)
            if uPrev is not None and self.Dy is not None:
                zi = zi - self.Dy @ uPrev

            Xp = self.A @ Xp + self.K @ zi  # X(i+1|i)
            if uPrev is not None and self.B is not None:
                Xp = Xp + self.B @ uPrev

            allXp[i + 1, :] = Xp[:, 0]

            if useU:
                ui = np.array(U[i, :][np.newaxis, :])
                if self.UPrepModel is not None:
                    ui = self.UPrepModel.apply(
                        ui, time_first=True
                    )  # Apply any mean removal/zscoring
                uPrev = np.array(ui).T
        return allXp

    def propagateStates(self, allXp, step_ahead=1):
        """Propagates the predicted states forward in time with A

        Args:
            allXp (np.ndarray): one-step ahead predicted states (time first).
            step_ahead (int, optional): Number of steps ahead. Defaults to 1.

        Returns:
            allXp (np.ndarray): step_ahead-step ahead predicted states.
        """
        for step in range(step_ahead - 1):
            allXp = (self.A @ allXp.T).T
        return allXp

    def generateObservationFromStates(
        self, X, U=None, param_names=["Cy", "Dy"], prep_model_param="YPrepModel"
    ):
        """Can generate Y or Z observation time series given the latent state time series X and optional external input U

        Args:
            X (numpy array): Dimensions are time x dimensions.
            U (numpy array, optional): input time series (time first). Defaults to None.
            param_names (list, optional): The names of the read-out and the feedthrough
                        parameters. Defaults to ['Cy', 'Dy'].
            prep_model_param (str, optional): The name of the preprocessing model parameter.
                        Defaults to 'YPrepModel'.
        Returns:
            numpy array: The observation time series, or None if the model has no read-out parameter.
                If param_names=['Cy', 'Dy'] and prep_model_param='YPrepModel', will
                    produce Y = Cy * X + Dy * U, and then applies the inverse of the
                    Y preprocessing model.
                If param_names=['Cz', 'Dz'] and prep_model_param='ZPrepModel', will
                    produce Z = Cz * X + Dz * U, and then applies the inverse of the
                    Z preprocessing model.
        """
        C = getattr(self, param_names[0])
        if C is None:
            return None
        D = getattr(self, param_names[1]) if len(param_names) > 1 else None

        Y = (C @ X.T).T
        if D is not None and U is not None:
            U = asTimeSeries(U)
            if self.UPrepModel is not None:
                U = self.UPrepModel.apply(
                    U, time_first=True
                )  # Apply any mean removal/zscoring
            Y = Y + (D @ np.array(U).T).T

        prepModel = getattr(self, prep_model_param) if prep_model_param is not None else None
        if prepModel is not None:
            Y = prepModel.apply_inverse(
                Y, time_first=True
            )  # Apply inverse of any mean-removal/zscoring
        return Y

    def checkTrials(self, Y, U=None):
        """Checks that the observation and input data (single time series or lists of
        trials) match each other and the model, before anything is computed.

        Args:
            Y (np.ndarray or list of np.ndarray): observation time series (time first).
            U (np.ndarray or list of np.ndarray, optional): input time series (time first).
        """
        if isSegmented(Y):
            if U is not None and (not isSegmented(U) or len(U) != len(Y)):
                msg = "When y is a list of {} trials, u must be None or a list of the same length (got {})".format(
                    len(Y), "a list of {}".format(len(U)) if isSegmented(U) else type(U).__name__
                )
                logger.error(msg)
                raise (ShapeMismatch(msg))
            for trialInd, trialY in enumerate(Y):
                self.checkDataDims(
                    asTimeSeries(trialY), None if U is None else asTimeSeries(U[trialInd])
                )
        else:
            if isSegmented(U):
                msg = "u is a list of trials but y is a single time series"
                logger.error(msg)
                raise (ShapeMismatch(msg))
            self.checkDataDims(asTimeSeries(Y), asTimeSeries(U))

    def predict(self, Y, U=None, steps_ahead=1):
        """Runs the Kalman filter and returns state and observation predictions

        Args:
            Y (np.ndarray or list of np.ndarray): observation time series (time first).
                    Can be a list of time series (e.g. trials), in which case each is processed
                    separately.
            U (np.ndarray or list of np.ndarray, optional): input time series (time first).
                    Must be a list matching Y if Y is a list. Defaults to None.
            steps_ahead (int, optional): how many steps ahead to predict. Defaults to 1.

        Returns:
            allZp (np.ndarray): predicted z via Cz (and Dz) or None if the model has no Cz.
            allYp (np.ndarray): predicted y via Cy (and Dy).
            allXp (np.ndarray): predicted states. The first row is nan.
            If Y is a list, each output is a list with one element per trial.
        """
        if isinstance(steps_ahead, bool) or int(steps_ahead) != steps_ahead or steps_ahead < 1:
            msg = "steps_ahead must be a positive integer, not {}".format(steps_ahead)
            logger.error(msg)
            raise (ValueError(msg))
        steps_ahead = int(steps_ahead)
        self.checkTrials(Y, U)
        if isSegmented(Y):  # If segments of data are provided as a list
            outs = ([], [], [])
            for trialInd, trialY in enumerate(Y):
                trialOuts = self.predict(
                    trialY,
                    U=U if U is None else U[trialInd],
                    steps_ahead=steps_ahead,
                )
                for oi, o in enumerate(trialOuts):
                    outs[oi].append(o)
            return outs

        # If only one data segment is provided
        allXp = self.kalman(Y, U=U)
        allXp = self.propagateStates(allXp, steps_ahead)

        # Future inputs are unknown for multi-step ahead predictions
        UForOut = U if steps_ahead == 1 and self.input_dim > 0 else None
        allZp = self.generateObservationFromStates(
            allXp, U=UForOut, param_names=["Cz", "Dz"], prep_model_param="ZPrepModel"
        )
        allYp = self.generateObservationFromStates(
            allXp, U=UForOut, param_names=["Cy", "Dy"], prep_model_param="YPrepModel"
        )
        return allZp, allYp, allXp

"""
Copyright (c) 2020 University of Southern California
See full notice in LICENSE.md
Omid G. Sani and Maryam M. Shanechi
Shanechi Lab, University of Southern California

predict: Given an identified model, predicts behavior z from neural data y
"""
import logging
import multiprocessing

import numpy as np
from tqdm import tqdm

from .LSSM import LSSM
from .tools import applyFuncIf, isSegmented, transposeIf

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    'time_first': True,
    'steps_ahead': 1,
    'verbose': False,
    'n_jobs': 1,
}


def _predictTrial(args):
    """Runs the single trial prediction (module level so that it can be sent to worker processes)"""
    model, Y, U, steps_ahead = args
    return model.predict(Y, U=U, steps_ahead=steps_ahead)


def predict(model, y, u=None, settings=None):
    """
    predict: Given an identified model, predicts behavior z from observation y
    Inputs:
        - (1) model: Identified model (e.g. returned from running PSID). Can be an
                LSSM object, a dictionary or any object that has the model parameters
                as attributes. Parameters A, K and Cy (or any of their alternative
                names) are required. Cz, B, Dy, Dz and the preprocessing models
                YPrepModel, ZPrepModel and UPrepModel are optional.
        - (2) y: Observation signal (e.g. neural signal).
                Must be T x ny (unless time_first=False):
                [y(1); y(2); y(3); ...; y(T)]
                Can also be a list of such arrays, one for each data segment (e.g. trials).
        - (3) u (optional): external input signal.
                Must be T x nu (unless time_first=False):
                [u(1); u(2); u(3); ...; u(T)]
                Must be a list matching y if y is a list.
        - (4) settings (optional): dictionary with any of the following:
                'time_first' (default True): if False, data are ny x T and outputs
                    are returned with time as the second dimension.
                'steps_ahead' (default 1): predict this many steps ahead.
                'verbose' (default False): if True, shows progress bars.
                'n_jobs' (default 1): if more than 1, trials are processed in parallel
                    with this many processes.
    Outputs:
        - (1) zPred: predicted behavior z using the provided observation y
                Has dimensions T x nz
                [zPred(1); zPred(2); zPred(3); ...; zPred(T)]
                with zPred(i) the best prediction of z(i) using y(1),...,y(i-1)
                (and u(1),...,u(i-2) in the state update, plus the feedthrough Dz u(i)).
                None if the model has no Cz.
        - (2) yPred: same as (1), for the observation y itself
        - (3) xPred: same as (1), for the latent states. xPred(1) is nan.
        If y is a list, each output is a list with one element per trial.
    Usage example:
        zPred, yPred, xPred = predict(idSys, yTest)
        zPred, yPred, xPred = predict(idSys, [yTrial1, yTrial2], [uTrial1, uTrial2])
    """
    settings = {} if settings is None else dict(settings)
    unknown = set(settings.keys()) - set(DEFAULT_SETTINGS.keys())
    if len(unknown) > 0:
        raise(ValueError('Unknown settings: {}. Supported settings are {}'.format(sorted(unknown), sorted(DEFAULT_SETTINGS.keys()))))
    for key, val in DEFAULT_SETTINGS.items():
        settings.setdefault(key, val)

    time_first = settings['time_first']
    verbose = settings['verbose']
    steps_ahead = settings['steps_ahead']
    n_jobs = int(settings['n_jobs'])

    model = LSSM.from_params(model, verbose=verbose)

    if not time_first:
        y = transposeIf(applyFuncIf(y, np.asarray))
        u = transposeIf(applyFuncIf(u, np.asarray))

    if not isSegmented(y):
        outs = model.predict(y, U=u, steps_ahead=steps_ahead)
    else:
        model.checkTrials(y, u)  # Fails before any trial is processed
        uList = [None for yi in range(len(y))] if u is None else u
        jobs = [(model, y[yInd], uList[yInd], steps_ahead) for yInd in range(len(y))]
        if n_jobs > 1 and len(jobs) > 1:
            logger.info('Predicting {} trials with {} processes'.format(len(jobs), n_jobs))
            with multiprocessing.Pool(min(n_jobs, len(jobs))) as pool:
                trialOuts = pool.map(_predictTrial, jobs)
        else:
            trialOuts = [_predictTrial(job) for job in tqdm(jobs, 'Predicting trials', disable=not verbose)]
        outs = tuple([list(o) for o in zip(*trialOuts)]) if len(trialOuts) > 0 else ([], [], [])

    zPred, yPred, xPred = outs
    if not time_first:
        zPred, yPred, xPred = transposeIf(zPred), transposeIf(yPred), transposeIf(xPred)
    return zPred, yPred, xPred

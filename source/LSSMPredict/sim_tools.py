"""
Copyright (c) 2020 University of Southern California
See full notice in LICENSE.md
Omid G. Sani and Maryam M. Shanechi
Shanechi Lab, University of Southern California

Tools for simulating models
"""

import logging

import numpy as np
from scipy import linalg, stats

from .LSSM import LSSM
from .PrepModel import PrepModel
from .tools import asTimeSeries

logger = logging.getLogger(__name__)


def drawRandomPoles(N, maxMag=0.95, a=2, b=1):
    """Draws random eigenvalues from the unit disk

    Args:
        N (int): number of eigenvalues to draw
        maxMag (float, optional): all magnitudes are scaled to be at most this. Defaults to 0.95.
        a, b (float, optional): parameters of the beta distribution of magnitudes.
            Use a, b = 2, 1 for uniform prob over unit circle.

    Returns:
        valsA (np.array): drawn random values, with complex conjugate pairs next to each other
    """
    nCplx = int(np.floor(N / 2))
    mag = maxMag * stats.beta.rvs(a=a, b=b, size=nCplx)  # Beta dist
    theta = np.random.rand(nCplx) * np.pi
    vals = mag * np.exp(1j * theta)
    valsA = np.stack((vals, vals.conj()), axis=1).reshape(2 * nCplx)

    # Add real mode(s) if needed
    nReal = N - 2 * nCplx
    if nReal > 0:
        rVals = maxMag * stats.beta.rvs(a=a, b=b, size=nReal)
        rSign = 2 * (((np.random.rand(nReal) > 0.5).astype(float)) - 0.5)
        valsA = np.concatenate((valsA, rVals * rSign))

    return valsA


def generateRandomLinearModel(nx, ny, nz=0, nu=0, with_B=True, with_Dy=True, with_Dz=True,
                              with_prep=False, as_dict=False):
    """Generates a random model in the steady state predictor form, with stable A and
    A-KC so that neither the model nor its Kalman predictor blow up.

    Args:
        nx, ny, nz, nu (int): state, observation, behavior and input dimensions
        with_B, with_Dy, with_Dz (bool, optional): if False (or nu=0), the model will not
            have that parameter. Defaults to True.
        with_prep (bool, optional): if True, will add random zscoring preprocessing models for
            y, z and u. Defaults to False.
        as_dict (bool, optional): if True, returns the parameter dictionary instead of an LSSM.

    Returns:
        LSSM or dict: the random model
    """
    isOk = False
    for attempt_ind in range(100):
        A, ev = linalg.cdf2rdf(drawRandomPoles(nx), np.eye(nx))
        K = np.random.randn(nx, ny) / np.sqrt(nx * ny)
        Cy = np.random.randn(ny, nx)
        A_KC_eigs = np.linalg.eigvals(A - K @ Cy)
        if np.all(np.abs(A_KC_eigs) < 1):
            isOk = True
            break
        logger.info('Random A-KC is not stable (max |eig|={:.3g}), drawing again'.format(np.max(np.abs(A_KC_eigs))))
    if not isOk:
        raise(Exception('Could not generate a random model with a stable A-KC'))
    params = {
        'A': A,
        'K': K,
        'Cy': Cy,
    }
    if nz > 0:
        params['Cz'] = np.random.randn(nz, nx)
    if nu > 0:
        if with_B:
            params['B'] = np.random.randn(nx, nu)
        if with_Dy:
            params['Dy'] = np.random.randn(ny, nu)
        if with_Dz and nz > 0:
            params['Dz'] = np.random.randn(nz, nu)
    if with_prep:
        for name, dim in [('YPrepModel', ny), ('ZPrepModel', nz), ('UPrepModel', nu)]:
            if dim > 0:
                params[name] = PrepModel.zscoring(
                    mean=10 * np.random.randn(dim),
                    std=0.5 + np.abs(np.random.randn(dim)),
                )
    if as_dict:
        return params
    return LSSM(params=params)


def generateRealizationWithKF(s, N, U=None, e=None):
    """Generates a realization of the model in predictor form, starting from x(0)=0,
    with the same input timing as LSSM.kalman:
    x(k+1) = A x(k) + B u(k-1) + K e(k)
    y(k)   = Cy x(k) + Dy u(k-1) + e(k)
    z(k)   = Cz x(k) + Dz u(k)
    where u is the input after the model's input preprocessing and u(-1) = 0. y and z
    are returned after undoing the model's preprocessing (i.e. in original units).

    Args:
        s (LSSM): the model
        N (int): number of samples
        U (np.array, optional): N x nu input. Defaults to None.
        e (np.array, optional): N x ny innovation. Defaults to white Gaussian noise.

    Returns:
        Y (np.array): N x ny observation
        X (np.array): N x nx latent state
        Z (np.array): N x nz behavior (None if the model has no Cz)
    """
    if e is None:
        e = np.random.randn(N, s.output_dim)
    uPrep = None
    if U is not None and s.input_dim > 0:
        U = asTimeSeries(U)
        uPrep = U if s.UPrepModel is None else s.UPrepModel.apply(U, time_first=True)
    X = np.zeros((N, s.state_dim))
    Y = np.zeros((N, s.output_dim))
    x = np.zeros(s.state_dim)
    for i in range(N):
        X[i, :] = x
        Y[i, :] = s.Cy @ x + e[i, :]
        x = s.A @ x + s.K @ e[i, :]
        if uPrep is not None and i > 0:
            if s.Dy is not None:
                Y[i, :] += s.Dy @ uPrep[i - 1, :]
            if s.B is not None:
                x = x + s.B @ uPrep[i - 1, :]
    Z = None
    if s.Cz is not None:
        Z = X @ s.Cz.T
        if uPrep is not None and s.Dz is not None:
            Z = Z + uPrep @ s.Dz.T
        if s.ZPrepModel is not None:
            Z = s.ZPrepModel.apply_inverse(Z, time_first=True)
    if s.YPrepModel is not None:
        Y = s.YPrepModel.apply_inverse(Y, time_first=True)
    logger.debug('Generated a realization of {} samples'.format(N))
    return Y, X, Z

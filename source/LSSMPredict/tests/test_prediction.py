"""
Copyright (c) 2020 University of Southern California
See full notice in LICENSE.md
Omid G. Sani and Maryam M. Shanechi
Shanechi Lab, University of Southern California

Tests the predict function
"""

import unittest
import sys, os, copy
from types import SimpleNamespace

sys.path.insert(0, os.path.dirname(__file__))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

import numpy as np

from LSSMPredict.prediction import predict
from LSSMPredict.LSSM import LSSM
from LSSMPredict.PrepModel import PrepModel, IdentityPrepModel
from LSSMPredict.errors import MissingMandatoryParameter, DimensionMismatch, ShapeMismatch
from LSSMPredict.sim_tools import generateRandomLinearModel, generateRealizationWithKF

numTests = 10


class ColumnScaler:
    """A preprocessing object that only provides the apply/apply_inverse methods"""
    def __init__(self, scale):
        self.scale = np.array(scale, dtype=float)

    def apply(self, Y, time_first=True):
        return np.array(Y) / self.scale[np.newaxis, :]

    def apply_inverse(self, Y, time_first=True):
        return np.array(Y) * self.scale[np.newaxis, :]


class TestPredict(unittest.TestCase):
    def test_scalar_example(self):
        model = {'A': np.array([[0.5]]), 'K': np.array([[0.2]]), 'Cy': np.array([[1.0]])}
        y = np.array([[0.0], [1.0], [1.0], [1.0]])
        zPred, yPred, xPred = predict(model, y)
        self.assertIsNone(zPred)
        self.assertTrue(np.isnan(xPred[0, 0]))
        np.testing.assert_allclose(xPred[1:, 0], [0.0, 0.2, 0.26])
        np.testing.assert_allclose(yPred, xPred)

        # A vector is taken as a single dimensional signal
        zPred2, yPred2, xPred2 = predict(model, [0, 1, 1, 1])
        np.testing.assert_array_equal(xPred2, xPred)

    def test_batch_equivalence(self):
        np.random.seed(42)
        for ci in range(numTests):
            with self.subTest(ci=ci):
                nu = np.random.randint(0, 3)
                params = generateRandomLinearModel(
                    np.random.randint(1, 5), np.random.randint(1, 4),
                    nz=np.random.randint(1, 3), nu=nu, with_prep=True, as_dict=True)
                nTrials = np.random.randint(1, 5)
                Y = [np.random.randn(np.random.randint(1, 50), params['Cy'].shape[0]) for t in range(nTrials)]
                U = [np.random.randn(YThis.shape[0], nu) for YThis in Y] if nu > 0 else None

                zPred, yPred, xPred = predict(params, Y, U)
                self.assertEqual([len(zPred), len(yPred), len(xPred)], [nTrials]*3)
                for t in range(nTrials):
                    zPredT, yPredT, xPredT = predict(params, Y[t], U[t] if U is not None else None)
                    np.testing.assert_array_equal(zPred[t], zPredT)
                    np.testing.assert_array_equal(yPred[t], yPredT)
                    np.testing.assert_array_equal(xPred[t], xPredT)
                    self.assertEqual(xPred[t].shape[0], Y[t].shape[0])

    def test_batch_without_behavior_readout(self):
        np.random.seed(42)
        params = generateRandomLinearModel(2, 2, as_dict=True)
        Y = (np.random.randn(10, 2), np.random.randn(15, 2))
        zPred, yPred, xPred = predict(params, Y)
        self.assertEqual(zPred, [None, None])
        self.assertEqual([x.shape for x in xPred], [(10, 2), (15, 2)])

        zPredT, yPredT, xPredT = predict(params, [YThis.T for YThis in Y], settings={'time_first': False})
        self.assertEqual(zPredT, [None, None])
        self.assertEqual([x.shape for x in xPredT], [(2, 10), (2, 15)])

        self.assertEqual(predict(params, []), ([], [], []))

    def test_parallel_trials(self):
        np.random.seed(42)
        s = generateRandomLinearModel(3, 2, nz=2, nu=1, with_prep=True)
        Y = [np.random.randn(30 + t, 2) for t in range(4)]
        U = [np.random.randn(30 + t, 1) for t in range(4)]
        outs = predict(s, Y, U)
        outsParallel = predict(s, Y, U, settings={'n_jobs': 2})
        for o, oP in zip(outs, outsParallel):
            self.assertEqual(len(oP), len(Y))
            for t in range(len(Y)):
                np.testing.assert_allclose(oP[t], o[t], rtol=1e-12)

    def test_model_record_formats(self):
        np.random.seed(42)
        params = generateRandomLinearModel(3, 2, nz=1, nu=1, with_prep=True, as_dict=True)
        Y, U = np.random.randn(25, 2), np.random.randn(25, 1)
        s = LSSM(params=params)
        outs = predict(s, Y, U)

        # The verbose setting applies to this call without changing the given model
        outsVerbose = predict(s, Y, U, settings={'verbose': True})
        self.assertFalse(s.verbose)
        for o, oV in zip(outs, outsVerbose):
            np.testing.assert_array_equal(o, oV)

        legacyRecord = SimpleNamespace(
            a=params['A'], k=params['K'], c=params['Cy'],
            b=params['B'], d=params['Dy'], dz=params['Dz'],
            T=np.concatenate((np.zeros((1, 1)), params['Cz'].T), axis=0),
            YPrepModel=params['YPrepModel'], ZPrepModel=params['ZPrepModel'],
            UPrepModel=params['UPrepModel'],
        )
        outsLegacy = predict(legacyRecord, Y, U)
        for o, oL in zip(outs, outsLegacy):
            np.testing.assert_array_equal(o, oL)

    def test_transforms(self):
        np.random.seed(42)
        params = generateRandomLinearModel(3, 2, nz=2, nu=2, as_dict=True)
        Y, U = np.random.randn(40, 2), np.random.randn(40, 2)
        outs = predict(params, Y, U)

        # Identity preprocessing is the same as no preprocessing
        paramsId = copy.copy(params)
        for p in ['YPrepModel', 'ZPrepModel', 'UPrepModel']:
            paramsId[p] = IdentityPrepModel()
        outsId = predict(paramsId, Y, U)
        for o, oI in zip(outs, outsId):
            np.testing.assert_allclose(oI, o, rtol=1e-12, atol=1e-12)

        # Preprocessing objects only need apply and apply_inverse
        yScale, zScale, uScale = np.array([2.0, 4.0]), np.array([0.5, 3.0]), np.array([10.0, 0.1])
        paramsSc = copy.copy(params)
        paramsSc['YPrepModel'] = ColumnScaler(yScale)
        paramsSc['ZPrepModel'] = ColumnScaler(zScale)
        paramsSc['UPrepModel'] = ColumnScaler(uScale)
        zPred, yPred, xPred = predict(paramsSc, Y * yScale, U * uScale)
        np.testing.assert_allclose(xPred, outs[2], rtol=1e-10, atol=1e-10)
        np.testing.assert_allclose(yPred, outs[1] * yScale, rtol=1e-10, atol=1e-10)
        np.testing.assert_allclose(zPred, outs[0] * zScale, rtol=1e-10, atol=1e-10)

        # Mean removal: predictions follow the shifted data
        yMean, zMean, uMean = np.array([5.0, -3.0]), np.array([1.0, 100.0]), np.array([-2.0, 7.0])
        paramsM = copy.copy(params)
        paramsM['YPrepModel'] = PrepModel.mean_removal(yMean)
        paramsM['ZPrepModel'] = PrepModel.mean_removal(zMean)
        paramsM['UPrepModel'] = PrepModel.mean_removal(uMean)
        zPred, yPred, xPred = predict(paramsM, Y + yMean, U + uMean)
        np.testing.assert_allclose(xPred, outs[2], rtol=1e-10, atol=1e-10)
        np.testing.assert_allclose(yPred, outs[1] + yMean, rtol=1e-10, atol=1e-10)
        np.testing.assert_allclose(zPred, outs[0] + zMean, rtol=1e-10, atol=1e-10)

    def test_time_first_false(self):
        np.random.seed(42)
        s = generateRandomLinearModel(3, 2, nz=2, nu=1, with_prep=True)
        Y = [np.random.randn(20, 2), np.random.randn(12, 2)]
        U = [np.random.randn(20, 1), np.random.randn(12, 1)]
        outs = predict(s, Y, U)
        outsT = predict(s, [YThis.T for YThis in Y], [UThis.T for UThis in U], settings={'time_first': False})
        for o, oT in zip(outs, outsT):
            for t in range(len(Y)):
                np.testing.assert_allclose(oT[t], o[t].T, rtol=1e-12, atol=1e-12)

        zPredT, yPredT, xPredT = predict(s, Y[0].T, U[0].T, settings={'time_first': False})
        np.testing.assert_allclose(xPredT, outs[2][0].T, rtol=1e-12, atol=1e-12)

    def test_realization_is_predicted(self):
        np.random.seed(42)
        s = generateRandomLinearModel(4, 3, nz=2, nu=2, with_prep=True)
        N = 500
        U = np.random.randn(N, 2)
        Y, X, Z = generateRealizationWithKF(s, N, U=U)
        zPred, yPred, xPred = predict(s, Y, U, settings={'verbose': True})
        np.testing.assert_allclose(zPred[1:, :], Z[1:, :], rtol=1e-6, atol=1e-6)
        np.testing.assert_allclose(xPred[1:, :], X[1:, :], rtol=1e-6, atol=1e-6)

    def test_settings(self):
        model = {'A': 0.5, 'K': 0.2, 'Cy': 1.0}
        y = np.random.randn(10, 1)
        with self.assertRaises(ValueError):
            predict(model, y, settings={'smoothing': True})
        zPred, yPred, xPred = predict(model, y, settings={'steps_ahead': 2})
        np.testing.assert_allclose(xPred, 0.5 * predict(model, y)[2])

    def test_errors(self):
        np.random.seed(42)
        with self.assertRaises(MissingMandatoryParameter):
            predict({'A': 0.5, 'Cy': 1.0}, np.random.randn(10, 1))
        with self.assertRaises(MissingMandatoryParameter):
            predict({'K': 0.5, 'Cy': 1.0}, np.random.randn(10, 1))
        params = generateRandomLinearModel(3, 2, nu=1, as_dict=True)
        with self.assertRaises(DimensionMismatch):
            predict(params, np.random.randn(10, 3))
        with self.assertRaises(ShapeMismatch):
            predict(params, [np.random.randn(10, 2)], [np.random.randn(10, 1)]*2)
        with self.assertRaises(ShapeMismatch):
            predict(params, [np.random.randn(10, 2), np.random.randn(12, 2)], [np.random.randn(10, 1)]*2)
        with self.assertRaises(ShapeMismatch):
            predict(params, [np.random.randn(10, 2)]*2, [np.random.randn(10, 1), np.random.randn(9, 1)], settings={'n_jobs': 2})


if __name__ == '__main__':
    unittest.main()

# core/training.py
# this module collects trials, splits them into training and test sets and fits the readout by ridge regression

import logging
import warnings
from collections.abc import Sequence

import numpy as np
from joblib import Parallel, delayed

from echostate.utils.general import create_rng
from echostate.utils.metrics import calculate_metrics
from .config import PREDICTION_DEFAULTS, RIDGE_LAMBDA, ESNConfig
from .errors import ConfigurationError, PreconditionViolation, SingularMatrixError
from .linalg import LinearAlgebra
from .models import EchoStateNetwork, SimulationType, Trial

logger = logging.getLogger(__name__)

DEFAULT_TEST_FRACTION = 0.20


def ridgeSolve(A, B, ridgeParam, linearAlgebra=None):
    """
    Tikhonov regularized least squares (Wyffels et al. 2008):
        W = (A'A + lambda*I)^-1 A'B
    A holds one readout input row per kept sample, B the matching teacher rows.
    """
    linearAlgebra = linearAlgebra if linearAlgebra is not None else LinearAlgebra()
    A = np.asarray(A, dtype=np.float64)
    B = np.asarray(B, dtype=np.float64)
    if B.ndim == 1:
        B = B.reshape(-1, 1)
    if A.shape[0] != B.shape[0]:
        raise PreconditionViolation(f"ridgeSolve: A has {A.shape[0]} rows but B has {B.shape[0]}.")

    logger.info("Create correlation matrix A'*A")
    AtA = A.T @ A

    logger.info("Add lambda*I to A'*A (lambda=%s)", ridgeParam)
    AtA[np.diag_indices_from(AtA)] += ridgeParam

    logger.info("Create inverse of A'*A")
    AtA_inv, ok = linearAlgebra.invert(AtA)
    if not ok:
        raise SingularMatrixError(
            f"ridgeRegression: A'A + lambda*I ({AtA.shape[0]}x{AtA.shape[1]}, lambda={ridgeParam}) is singular; "
            "a non-singular matrix is required, readout weights were not changed."
        )

    logger.info("Calculate A'*B")
    AtB = A.T @ B

    logger.info("Obtaining W")
    return AtA_inv @ AtB


class TrialSetView(Sequence):
    """Read-only view over the trials of a store selected by an index array."""

    def __init__(self, trials, indices):
        self._trials = trials
        self._indices = indices

    def __getitem__(self, index):
        if isinstance(index, slice):
            return TrialSetView(self._trials, self._indices[index])
        return self._trials[self._indices[index]]

    def __len__(self):
        return len(self._indices)

    def __repr__(self):
        return f"TrialSetView({[self._trials[i].classId for i in self._indices]})"


class TrialStore:
    def __init__(self, rng=None):
        self.rng = create_rng(rng)
        self.trials = []
        self._isTest = None

    def add(self, trial):
        self.trials.append(trial)
        # a new trial invalidates the previous split
        self._isTest = None
        return trial

    def __len__(self):
        return len(self.trials)

    def __iter__(self):
        return iter(self.trials)

    @property
    def partitioned(self):
        return self._isTest is not None

    def partition(self, testFraction=DEFAULT_TEST_FRACTION):
        n = len(self.trials)
        if n < 2:
            raise ConfigurationError(f"partition: need at least one training and one test trial, only {n} registered.")
        if not 0.0 <= testFraction <= 1.0:
            raise ConfigurationError(f"partition: testFraction must lie in [0, 1], got {testFraction}.")

        isTest = self.rng.random(n) < testFraction
        # no hit, make one of the trials a test trial
        if not isTest.any():
            isTest[self.rng.integers(n)] = True
        if isTest.all():
            isTest[self.rng.integers(n)] = False

        self._isTest = isTest
        for trial, test in zip(self.trials, isTest):
            logger.info("%s: %s", "Test" if test else "Train", trial.classId)
        return self

    def _view(self, wantTest, caller):
        if self._isTest is None:
            raise ConfigurationError(f"{caller}: trials are not partitioned, call partition() or runTrials() first.")
        return TrialSetView(self.trials, np.flatnonzero(self._isTest == wantTest))

    def trainingSet(self):
        return self._view(False, "trainingSet")

    def testSet(self):
        return self._view(True, "testSet")


class Trainer:
    """
    Drives a network over registered trials: teacher forcing on the training set,
    ridge regression on the collected states, then teacher testing on held-out
    trials. Only a single output neuron is supported by the regression.

    nJobs > 1 runs training trials on joblib threads; the network weights are
    only read during a run, each trial owns its own buffers.
    """

    def __init__(self, network=None, rng=None, linearAlgebra=None, ridgeParam=RIDGE_LAMBDA,
                 testFraction=DEFAULT_TEST_FRACTION, nJobs=1):
        self.rng = create_rng(rng)
        self.linearAlgebra = linearAlgebra if linearAlgebra is not None else LinearAlgebra()
        if network is None:
            network = EchoStateNetwork(ESNConfig(**PREDICTION_DEFAULTS), rng=self.rng, linearAlgebra=self.linearAlgebra)
            network.init()
        self.network = network
        self.ridgeParam = ridgeParam
        self.testFraction = testFraction
        self.nJobs = nJobs
        self.store = TrialStore(rng=self.rng)

    @classmethod
    def forPrediction(cls, reservoirSize, connectivity, rng=None, **kwargs):
        """Single input, single output predictor with feedback, as used for time series forecasting."""
        rng = create_rng(rng)
        linearAlgebra = kwargs.pop("linearAlgebra", None)
        networkParams = dict(PREDICTION_DEFAULTS, reservoirSize=reservoirSize, connectivity=connectivity)
        networkParams.update(kwargs.pop("networkParams", {}))
        network = EchoStateNetwork(ESNConfig.from_dict(networkParams), rng=rng, linearAlgebra=linearAlgebra)
        network.init()
        return cls(network=network, rng=rng, linearAlgebra=linearAlgebra, **kwargs)

    # - trials -
    def addTrial(self, inputSignal, outputSignal, length=None, id=-1, teacherWindowSize=None):
        if not self.network.initialized:
            raise PreconditionViolation("addTrial: the network must be initialized before trials are sized against it.")

        inputSignal = np.asarray(inputSignal)
        length = len(inputSignal) if length is None else int(length)
        if length < 1 or length > len(inputSignal) or length > len(outputSignal):
            raise PreconditionViolation(
                f"addTrial: length {length} does not fit input ({len(inputSignal)}) and output ({len(outputSignal)}) sequences."
            )

        trial = Trial(
            inputSignal[:length], outputSignal[:length],
            reservoirSize=self.network.initConfig.reservoirSize,
            teacherWindowSize=teacherWindowSize, classId=id,
        )
        return self.store.add(trial)

    def partition(self, testFraction=None):
        self.store.partition(self.testFraction if testFraction is None else testFraction)
        return self

    def trainingSet(self):
        return self.store.trainingSet()

    def testSet(self):
        return self.store.testSet()

    # - training -
    def _requireSingleOutput(self, caller):
        outputSize = self.network.initConfig.outputSize
        if outputSize != 1:
            raise ConfigurationError(f"{caller}: ridge regression supports outputSize == 1 only, network has {outputSize}.")

    def _runAll(self, trials, simType):
        if self.nJobs == 1 or len(trials) < 2:
            for trial in trials:
                self.network.run(trial, simType)
        else:
            Parallel(n_jobs=self.nJobs, prefer="threads")(delayed(self.network.run)(trial, simType) for trial in trials)

    def runTrials(self):
        if not self.network.initialized:
            raise PreconditionViolation("runTrials: network is not initialized, call init() first.")
        self._requireSingleOutput("runTrials")

        self.partition()
        trainSet = self.trainingSet()
        self._runAll(trainSet, SimulationType.TEACHER_FORCING)

        W = self.ridgeRegression(trainSet)
        self.network.setOutputWeights(W.T.ravel(), W.size)
        return W

    def designMatrices(self, trials):
        """Stack [state(t), input(t)] rows and teacher rows, dropping the first quarter of every trial."""
        trials = list(trials)
        if not trials:
            raise ConfigurationError("ridgeRegression: empty training set.")

        lengths = {trial.sampleCount for trial in trials}
        if len(lengths) > 1:
            warnings.warn(f"Training trials differ in length {sorted(lengths)}; each one drops its own settling transient.")

        rowsA, rowsB = [], []
        for trial in trials:
            skip = trial.sampleCount // 4
            logger.info("Skip %d sample%s", skip, "" if skip == 1 else "s")
            rowsA.append(np.hstack([trial.reservoirStates[skip:], trial.input[skip:]]))
            rowsB.append(trial.output[skip:])

        return np.vstack(rowsA), np.vstack(rowsB)

    def ridgeRegression(self, trials, ridgeParam=None):
        self._requireSingleOutput("ridgeRegression")
        ridgeParam = self.ridgeParam if ridgeParam is None else ridgeParam

        trials = list(trials)
        logger.info("Ridge regression on trial set of size %d", len(trials))
        A, B = self.designMatrices(trials)
        return ridgeSolve(A, B, ridgeParam, self.linearAlgebra)

    # - testing -
    def runTest(self, index, returnStates=False):
        """
        Runs test trial `index` teacher-forced for its first teacherWindowSize steps
        and self-predicting afterwards. Returns (teacher, prediction[, states]).
        """
        testSet = self.testSet()
        if not 0 <= index < len(testSet):
            raise PreconditionViolation(f"runTest: index {index} out of range for a test set of {len(testSet)} trial(s).")

        trial = testSet[index]
        # earlier test runs overwrote the teacher values
        trial.output[:] = trial.teacher
        teacher = trial.output.copy()
        self.network.run(trial, SimulationType.TEACHER_TESTING)
        result = trial.output.copy()

        if returnStates:
            return teacher, result, trial.reservoirStates.copy()
        return teacher, result

    def evaluate(self, index):
        teacher, result = self.runTest(index)
        window = self.testSet()[index].teacherWindowSize
        return calculate_metrics(teacher, result, window)

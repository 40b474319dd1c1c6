# core/models.py
# this module implements the echo state network: weight initialization and the time-stepped recurrence

import logging
from enum import IntEnum

import numpy as np

from echostate.utils.general import create_rng
from .config import ESNConfig
from .errors import PreconditionViolation
from .linalg import LinearAlgebra
from .reservoir import WEIGHT_DTYPE, ReservoirBuilder

logger = logging.getLogger(__name__)


class SimulationType(IntEnum):
    OFFLINE_SEPARATE_INPUT = 0
    OFFLINE_SIMULTANEOUS_INPUT = 1
    ONLINE = 2
    TEACHER_FORCING = 3
    TEACHER_TESTING = 4
    PREDICTION = 5


# - one training / testing episode -
class Trial:
    """
    Input and teacher sequences of one episode plus the reservoir trajectory the
    network writes while running it.

    input is borrowed from the caller and exposed read-only. output holds the
    teacher values before a run; runs that compute outputs overwrite it in place.
    Only the first teacherWindowSize samples stay teacher-forced under
    TEACHER_TESTING (default: a fifth of the trial).
    """

    def __init__(self, inputSignal, outputSignal, reservoirSize, teacherWindowSize=None, classId=-1, keepDebug=True):
        if inputSignal is None or outputSignal is None:
            raise PreconditionViolation("Trial: input and output sequences are required.")

        inputSignal = np.asarray(inputSignal, dtype=np.float64).view()
        if inputSignal.ndim == 1:
            inputSignal = inputSignal.reshape(-1, 1)
        inputSignal.flags.writeable = False

        outputSignal = np.asarray(outputSignal, dtype=np.float64)
        if outputSignal.ndim == 1:
            outputSignal = outputSignal.reshape(-1, 1)

        if inputSignal.shape[0] != outputSignal.shape[0]:
            raise PreconditionViolation(
                f"Trial: input has {inputSignal.shape[0]} samples but output has {outputSignal.shape[0]}."
            )
        if reservoirSize < 1:
            raise PreconditionViolation(f"Trial: reservoirSize must be >= 1, got {reservoirSize}.")

        self.input = inputSignal
        self.output = outputSignal
        self.teacher = outputSignal.copy()
        self.teacher.flags.writeable = False
        self.sampleCount = inputSignal.shape[0]
        self.teacherWindowSize = self.sampleCount // 5 if teacherWindowSize is None else int(teacherWindowSize)
        self.classId = classId
        self.reservoirStates = np.zeros((self.sampleCount, reservoirSize))
        self.debug = np.zeros((self.sampleCount, reservoirSize)) if keepDebug else None

    @property
    def inputSize(self):
        return self.input.shape[1]

    @property
    def outputSize(self):
        return self.output.shape[1]

    @property
    def reservoirSize(self):
        return self.reservoirStates.shape[1]

    def __len__(self):
        return self.sampleCount

    def __repr__(self):
        return f"Trial(classId={self.classId}, samples={self.sampleCount}, teacherWindow={self.teacherWindowSize})"


# - Standard -
class EchoStateNetwork:
    """
    A fixed random reservoir with a trainable linear readout.

    Parameters live in an ESNConfig and are only turned into weights by init().
    Weight layout, rows are the receiving neurons:
        inputWeights      (reservoirSize, inputSize)
        feedbackWeights   (reservoirSize, outputSize)
        reservoirWeights  (reservoirSize, reservoirSize), [n, i] = weight from i to n
        outputWeights     (outputSize, reservoirSize + inputSize), reservoir block first
    """

    def __init__(self, config=None, rng=None, linearAlgebra=None, maxRetries=50, **params):
        if config is None:
            config = ESNConfig()
        if params:
            config = config.replace(**params)
        if config.reservoirSize <= 1:
            raise PreconditionViolation(f"EchoStateNetwork: reservoirSize must be > 1, got {config.reservoirSize}.")

        self.config = config
        self.linearAlgebra = linearAlgebra if linearAlgebra is not None else LinearAlgebra()
        self.maxRetries = maxRetries
        self._injectedRng = rng
        self._rng = None
        self._initConfig = None

        self.inputWeights = None
        self.feedbackWeights = None
        self.outputWeights = None
        self.reservoirWeights = None
        self.thresholds = None

        self._bindActivations()

    # - configuration -
    def configure(self, **params):
        self.config = self.config.replace(**params)
        if "reservoirActivation" in params or "outputActivation" in params:
            self._bindActivations()
        return self

    def _bindActivations(self):
        self._resActFunc = self.config.reservoirActivation.forward
        self._outActFunc = self.config.outputActivation.forward
        self._outInvActFunc = self.config.outputActivation.inverse

    @property
    def reservoirActivation(self):
        return self.config.reservoirActivation

    @reservoirActivation.setter
    def reservoirActivation(self, kind):
        self.configure(reservoirActivation=kind)

    @property
    def outputActivation(self):
        return self.config.outputActivation

    @outputActivation.setter
    def outputActivation(self, kind):
        self.configure(outputActivation=kind)

    @property
    def initialized(self):
        return self._initConfig is not None

    @property
    def initConfig(self):
        # parameters the current weights were built with, None before init()
        return self._initConfig

    # - initialization -
    def init(self):
        cfg = self.config
        if cfg.reservoirSize <= 1:
            raise PreconditionViolation(f"init: reservoirSize must be > 1, got {cfg.reservoirSize}.")

        self._release()

        rng = self._injectedRng if self._injectedRng is not None else create_rng(cfg.randomSeed)
        builder = ReservoirBuilder(rng=rng, linearAlgebra=self.linearAlgebra, maxRetries=self.maxRetries)

        if cfg.inputMode == "jaeger":
            inputWeights = builder.jaegerMatrix((cfg.reservoirSize, cfg.inputSize))
        else:
            inputWeights = builder.randomMatrix((cfg.reservoirSize, cfg.inputSize), cfg.inputConnectivity)
            inputWeights = self._scaleAndShift(inputWeights, cfg.inputScale, cfg.inputShift)

        feedbackWeights = builder.randomMatrix((cfg.reservoirSize, cfg.outputSize), cfg.feedbackConnectivity)
        feedbackWeights = self._scaleAndShift(feedbackWeights, cfg.feedbackScale, cfg.feedbackShift)

        # placeholder readout until a trainer installs regression weights
        outputWeights = builder.randomMatrix((cfg.outputSize, cfg.reservoirSize + cfg.inputSize), 1.0)

        thresholds = np.full(cfg.reservoirSize, cfg.thresholdValue, dtype=WEIGHT_DTYPE)

        reservoirWeights = builder.generate(
            cfg.reservoirSize, cfg.connectivity, cfg.spectralRadius,
            excitatoryRatio=cfg.excitatoryRatio, mode=cfg.reservoirMode,
        )

        self.inputWeights = inputWeights
        self.feedbackWeights = feedbackWeights
        self.outputWeights = outputWeights
        self.reservoirWeights = reservoirWeights
        self.thresholds = thresholds
        self._rng = rng
        self._initConfig = cfg
        return self

    def _release(self):
        self.inputWeights = None
        self.feedbackWeights = None
        self.outputWeights = None
        self.reservoirWeights = None
        self.thresholds = None
        self._initConfig = None

    @staticmethod
    def _scaleAndShift(weights, scale, shift):
        if scale != 1 or shift != 0:
            weights = (weights * scale + shift).astype(WEIGHT_DTYPE)
        return weights

    def install(self, config, inputWeights, feedbackWeights, outputWeights, reservoirWeights):
        # used by checkpoint loading, all arrays already validated
        self.config = config
        self._bindActivations()
        self.inputWeights = inputWeights
        self.feedbackWeights = feedbackWeights
        self.outputWeights = outputWeights
        self.reservoirWeights = reservoirWeights
        self.thresholds = np.full(config.reservoirSize, config.thresholdValue, dtype=WEIGHT_DTYPE)
        if self._rng is None:
            self._rng = self._injectedRng if self._injectedRng is not None else create_rng(config.randomSeed)
        self._initConfig = config

    # - readout -
    def setOutputWeights(self, weights, length=None):
        if not self.initialized:
            raise PreconditionViolation("setOutputWeights: network is not initialized, call init() first.")

        weights = np.asarray(weights, dtype=np.float64).ravel()
        length = weights.size if length is None else int(length)
        cfg = self._initConfig
        expected = cfg.outputSize * (cfg.reservoirSize + cfg.inputSize)
        if length != expected or weights.size != length:
            raise PreconditionViolation(
                f"setOutputWeights: expected {expected} weights (outputSize*(reservoirSize+inputSize)), got length={length}, size={weights.size}."
            )
        self.outputWeights = weights.astype(WEIGHT_DTYPE).reshape(cfg.outputSize, cfg.reservoirSize + cfg.inputSize)

    def inverseOutput(self, values):
        return self._outInvActFunc(np.asarray(values, dtype=np.float64))

    # - recurrence -
    def _validate_trial(self, trial):
        if trial is None:
            raise PreconditionViolation("run: trial is None.")
        if not self.initialized:
            raise PreconditionViolation("run: network is not initialized, call init() first.")
        if trial.input is None or trial.output is None or trial.reservoirStates is None:
            raise PreconditionViolation("run: trial buffers (input, output, reservoirStates) must not be None.")

        cfg = self._initConfig
        if trial.inputSize != cfg.inputSize:
            raise PreconditionViolation(f"run: trial inputSize {trial.inputSize} != network inputSize {cfg.inputSize}.")
        if trial.outputSize != cfg.outputSize:
            raise PreconditionViolation(f"run: trial outputSize {trial.outputSize} != network outputSize {cfg.outputSize}.")
        if trial.reservoirSize != cfg.reservoirSize:
            raise PreconditionViolation(
                f"run: trial states sized for {trial.reservoirSize} neurons, network has {cfg.reservoirSize}."
            )
        if trial.output.shape[0] != trial.sampleCount or trial.reservoirStates.shape[0] != trial.sampleCount:
            raise PreconditionViolation("run: trial buffers do not span sampleCount timesteps.")

    def run(self, trial, simType):
        self._validate_trial(trial)
        simType = SimulationType(simType)
        cfg = self._initConfig

        inputSignal = trial.input
        output = trial.output
        states = trial.reservoirStates
        debug = trial.debug

        Win = self.inputWeights.astype(np.float64)
        W = self.reservoirWeights.astype(np.float64)
        Wfb = self.feedbackWeights.astype(np.float64)
        Wout = self.outputWeights.astype(np.float64)
        thresholds = self.thresholds.astype(np.float64)

        reservoirSize = cfg.reservoirSize
        feedback = cfg.feedbackConnectivity > 0
        leak = 1.0 - cfg.timeConstant * cfg.decayRate
        addNoise = cfg.stateNoise > 0 and simType is SimulationType.TEACHER_FORCING

        for t in range(trial.sampleCount):
            # W_in u(t) + C W x(t-1) + W_back y(t-1) - threshold
            pre = Win @ inputSignal[t] - thresholds
            if t > 0:
                pre += cfg.timeConstant * (W @ states[t - 1])
                if feedback:
                    pre += Wfb @ output[t - 1]
            if addNoise:
                pre += (self._rng.random(reservoirSize) - 0.5) * cfg.stateNoise

            if debug is not None:
                debug[t] = pre

            totalInput = self._resActFunc(pre)
            # x(t) = (1 - C a) x(t-1) + f(...)
            leftOver = leak * states[t - 1] if t > 0 else 0.0
            states[t] = leftOver + totalInput

            setOutput = feedback
            if simType is SimulationType.TEACHER_FORCING:
                setOutput = False
            if simType is SimulationType.TEACHER_TESTING and t < trial.teacherWindowSize:
                setOutput = False

            if setOutput:
                output[t] = self._outActFunc(Wout[:, :reservoirSize] @ states[t] + Wout[:, reservoirSize:] @ inputSignal[t])

    # - reporting -
    def describe(self):
        cfg = self.config
        return {
            "reservoirSize": cfg.reservoirSize,
            "connectivity": cfg.connectivity,
            "spectralRadius": cfg.spectralRadius,
            "reservoirMode": cfg.reservoirMode.value,
            "reservoirActivation": cfg.reservoirActivation.name.lower(),
            "inputSize": cfg.inputSize,
            "inputConnectivity": cfg.inputConnectivity,
            "inputShift": cfg.inputShift,
            "inputScale": cfg.inputScale,
            "outputSize": cfg.outputSize,
            "outputActivation": cfg.outputActivation.name.lower(),
            "feedbackConnectivity": cfg.feedbackConnectivity,
            "feedbackShift": cfg.feedbackShift,
            "feedbackScale": cfg.feedbackScale,
            "timeConstant": cfg.timeConstant,
            "decayRate": cfg.decayRate,
            "initialized": self.initialized,
        }

    def logStats(self):
        logger.info("___________Echo State Network__________")
        for key, value in self.describe().items():
            logger.info("%s: %s", key, value)

    # - persistence -
    def save(self, path):
        from .persistence import saveNetwork
        saveNetwork(self, path)

    def load(self, path):
        from .persistence import loadNetwork
        loadNetwork(self, path)
        return self

# core/persistence.py
# this module writes and reads binary network checkpoints

import logging
import struct

import numpy as np

from .activations import ActivationKind
from .errors import CheckpointError, ConfigurationError, PreconditionViolation

logger = logging.getLogger(__name__)

# native byte order, fixed widths:
# inputSize, outputSize, reservoirSize, reservoirActivation, outputActivation (int32)
# connectivity, inputConnectivity, feedbackConnectivity, spectralRadius, inputScale,
# feedbackScale, inputShift, feedbackShift, timeConstant, feedbackScale again (float32)
HEADER = struct.Struct("=5i10f")
WEIGHT_FORMAT = np.dtype("=f4")


def _matrixSizes(inputSize, outputSize, reservoirSize):
    return [
        ("inputWeights", (reservoirSize, inputSize)),
        ("feedbackWeights", (reservoirSize, outputSize)),
        ("outputWeights", (outputSize, reservoirSize + inputSize)),
        ("reservoirWeights", (reservoirSize, reservoirSize)),
    ]


def saveNetwork(network, filename):
    if not network.initialized:
        raise PreconditionViolation(f"save: network is not initialized, nothing to write to '{filename}'.")

    cfg = network.initConfig
    header = HEADER.pack(
        cfg.inputSize, cfg.outputSize, cfg.reservoirSize,
        int(network.reservoirActivation), int(network.outputActivation),
        cfg.connectivity, cfg.inputConnectivity, cfg.feedbackConnectivity, cfg.spectralRadius,
        cfg.inputScale, cfg.feedbackScale, cfg.inputShift, cfg.feedbackShift,
        cfg.timeConstant, cfg.feedbackScale,
    )

    try:
        with open(filename, "wb") as outputFile:
            outputFile.write(header)
            for name, shape in _matrixSizes(cfg.inputSize, cfg.outputSize, cfg.reservoirSize):
                matrix = np.ascontiguousarray(getattr(network, name), dtype=WEIGHT_FORMAT)
                if matrix.shape != shape:
                    raise CheckpointError(f"save: {name} has shape {matrix.shape}, expected {shape}.")
                outputFile.write(matrix.tobytes(order="C"))
    except OSError as err:
        raise CheckpointError(f"save: cannot write checkpoint '{filename}': {err}") from err

    logger.info("Saved ESN to %s", filename)


def loadNetwork(network, filename):
    """
    Reads a checkpoint into network. Everything is parsed and validated before the
    network is touched, so a failed load leaves it as it was.
    """
    try:
        with open(filename, "rb") as inputFile:
            data = inputFile.read()
    except OSError as err:
        raise CheckpointError(f"load: cannot read checkpoint '{filename}': {err}") from err

    if len(data) < HEADER.size:
        raise CheckpointError(f"load: '{filename}' is truncated ({len(data)} bytes, header needs {HEADER.size}).")

    (inputSize, outputSize, reservoirSize, reservoirActivation, outputActivation,
     connectivity, inputConnectivity, feedbackConnectivity, spectralRadius,
     inputScale, feedbackScale, inputShift, feedbackShift, timeConstant, _legacyFeedbackScale) = HEADER.unpack_from(data, 0)

    if inputSize < 1 or outputSize < 1 or reservoirSize <= 1:
        raise CheckpointError(
            f"load: '{filename}' holds invalid sizes (input={inputSize}, output={outputSize}, reservoir={reservoirSize})."
        )

    matrices = _matrixSizes(inputSize, outputSize, reservoirSize)
    expected = HEADER.size + sum(int(np.prod(shape)) for _, shape in matrices) * WEIGHT_FORMAT.itemsize
    if len(data) != expected:
        raise CheckpointError(f"load: '{filename}' has {len(data)} bytes, expected {expected}; file is truncated or corrupt.")

    try:
        config = network.config.replace(
            inputSize=inputSize,
            outputSize=outputSize,
            reservoirSize=reservoirSize,
            reservoirActivation=ActivationKind.parse(reservoirActivation),
            outputActivation=ActivationKind.parse(outputActivation),
            connectivity=connectivity,
            inputConnectivity=inputConnectivity,
            feedbackConnectivity=feedbackConnectivity,
            spectralRadius=spectralRadius,
            inputScale=inputScale,
            feedbackScale=feedbackScale,
            inputShift=inputShift,
            feedbackShift=feedbackShift,
            timeConstant=timeConstant,
        )
    except ConfigurationError as err:
        raise CheckpointError(f"load: '{filename}' holds invalid parameters: {err}") from err

    weights = {}
    offset = HEADER.size
    for name, shape in matrices:
        count = int(np.prod(shape))
        weights[name] = np.frombuffer(data, dtype=WEIGHT_FORMAT, count=count, offset=offset).astype(np.float32).reshape(shape)
        offset += count * WEIGHT_FORMAT.itemsize

    network.install(config, **weights)
    logger.info("Loaded ESN from %s", filename)

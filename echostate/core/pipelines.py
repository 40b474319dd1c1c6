# core/pipelines.py
# this module defines the time series prediction pipeline around the trainer

import logging
import os

import numpy as np

from echostate.utils.dataGenerator import mackeyGlassGenerator, squashSeries
from echostate.utils.exporting import export_results
from echostate.utils.general import create_rng
from echostate.utils.metrics import calculate_metrics
from echostate.utils.plotting import predictionAnalysis, reservoirStateImage
from .training import Trainer

logger = logging.getLogger(__name__)

INPUT_BIAS = 0.2


# - prediction pipeline: constant bias as input, the series as teacher output -
class PredictionPipeline:
    def __init__(self, trainer=None, reservoirSize=200, connectivity=0.1, inputBias=INPUT_BIAS, rng=None):
        self.rng = create_rng(rng)
        self.trainer = trainer if trainer is not None else Trainer.forPrediction(reservoirSize, connectivity, rng=self.rng)
        self.inputBias = inputBias
        self._is_trained = False
        self.network.logStats()

    @property
    def network(self):
        return self.trainer.network

    def prepareData(self, series, trialLength=100, nTrials=2):
        series = np.asarray(series, dtype=np.float64).ravel()
        if nTrials < 2:
            raise ValueError(f"At least 2 trials are needed (one training, one test), got {nTrials}.")
        span = trialLength * nTrials
        if len(series) < span:
            raise ValueError(f"Series of {len(series)} samples is too short for {nTrials} trials of {trialLength}.")

        start = int(self.rng.integers(0, len(series) - span + 1))
        bias = np.full(trialLength, self.inputBias)
        segments = []
        for t in range(nTrials):
            offset = start + t * trialLength
            segments.append((bias, series[offset:offset + trialLength].copy(), offset))
        return segments

    def trainModel(self, segments):
        for inputSignal, teacher, trialId in segments:
            self.trainer.addTrial(inputSignal, teacher, id=trialId)
        self.trainer.runTrials()
        self._is_trained = True
        return self

    def evaluateModel(self, outputDir=None):
        if not self._is_trained:
            raise RuntimeError("Model must be trained before evaluation.")

        results = []
        testSet = self.trainer.testSet()
        for index, trial in enumerate(testSet):
            teacher, prediction, states = self.trainer.runTest(index, returnStates=True)
            window = trial.teacherWindowSize
            metrics = calculate_metrics(teacher, prediction, window)
            logger.info("Test trial %s: nrmse=%.4f", trial.classId, metrics['nrmse'])

            if outputDir:
                predictionAnalysis(prediction, teacher, teacherWindowSize=window,
                                   filename=os.path.join(outputDir, f'prediction_{trial.classId}.png'))
                reservoirStateImage(states, filename=os.path.join(outputDir, f'states_{trial.classId}.png'))

            results.append({'trial': trial.classId, 'teacher': teacher, 'prediction': prediction,
                            'states': states, 'teacherWindowSize': window, 'metrics': metrics})
        return results

    def run(self, series=None, trialLength=100, nTrials=2, outputDir=None):
        if series is None:
            series = squashSeries(mackeyGlassGenerator(10000), downSample=10)

        if outputDir:
            os.makedirs(outputDir, exist_ok=True)

        self.trainModel(self.prepareData(series, trialLength=trialLength, nTrials=nTrials))
        results = self.evaluateModel(outputDir=outputDir)

        if outputDir and results:
            self.network.save(os.path.join(outputDir, 'esn.bin'))
            first = results[0]
            export_results(first['metrics'], first['prediction'], first['teacher'], first['teacherWindowSize'],
                           metrics_filename=os.path.join(outputDir, 'esn_results_metrics.csv'),
                           pred_filename=os.path.join(outputDir, 'esn_predictions.csv'))
        return results

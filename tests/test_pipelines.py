import numpy as np
import pandas as pd

from echostate.core.pipelines import PredictionPipeline
from echostate.utils.dataGenerator import mackeyGlassGenerator, squashSeries


def test_mackey_glass_series():
    series = mackeyGlassGenerator(3000)
    assert series[0] == 1.2
    # no delayed feedback yet, plain exponential decay
    assert np.all(np.diff(series[:170]) < 0)
    assert np.all(np.isfinite(series))

    squashed = squashSeries(series, downSample=10)
    assert len(squashed) == 300
    assert np.all(np.abs(squashed) < 1)


def test_prediction_pipeline(tmp_path):
    series = squashSeries(mackeyGlassGenerator(3000), downSample=10)
    pipeline = PredictionPipeline(reservoirSize=20, connectivity=0.3, rng=0)
    results = pipeline.run(series, trialLength=100, nTrials=2, outputDir=tmp_path)

    assert len(results) == 1
    assert results[0]['prediction'].shape == (100, 1)
    assert np.all(np.isfinite(results[0]['prediction']))
    for name in ('esn.bin', 'esn_results_metrics.csv', 'esn_predictions.csv'):
        assert (tmp_path / name).exists()
    assert list(tmp_path.glob('prediction_*.png'))
    assert list(tmp_path.glob('states_*.png'))


def test_pipeline_prediction_csv(tmp_path):
    series = squashSeries(mackeyGlassGenerator(3000), downSample=10)
    PredictionPipeline(reservoirSize=20, connectivity=0.3, rng=1).run(series, outputDir=tmp_path)

    frame = pd.read_csv(tmp_path / 'esn_predictions.csv')
    assert len(frame) == 100
    assert frame['TeacherForced'].sum() == 20

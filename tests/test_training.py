import numpy as np
import pytest

from echostate import (
    ConfigurationError,
    EchoStateNetwork,
    PreconditionViolation,
    SingularMatrixError,
    Trainer,
    Trial,
)
from echostate.core.training import TrialStore, ridgeSolve
from echostate.utils.exporting import readMatrix, writeMatrix


def sine(length, phase=0.0):
    return 0.5 * np.sin(np.arange(length) * 0.3 + phase)


def scenarioTrainer(seed=42, nJobs=1):
    trainer = Trainer.forPrediction(10, 0.8, rng=seed, nJobs=nJobs, networkParams={"spectralRadius": 0.8})
    bias = np.full(20, 0.2)
    trainer.addTrial(bias, sine(20), id=0)
    trainer.addTrial(bias, sine(20, 0.5), id=1)
    return trainer


def test_ridge_solve_recovers_linear_map(rng):
    A = rng.normal(size=(60, 4))
    w = np.array([1.0, -2.0, 0.5, 3.0])
    W = ridgeSolve(A, A @ w, 0.0)
    assert W.shape == (4, 1)
    assert np.allclose(W.ravel(), w, atol=1e-4)


def test_ridge_solve_singular():
    with pytest.raises(SingularMatrixError):
        ridgeSolve(np.zeros((10, 3)), np.zeros(10), 0.0)


def test_ridge_regression_on_trial_states(rng):
    network = EchoStateNetwork(inputSize=1, outputSize=1, reservoirSize=3, connectivity=1.0, randomSeed=0).init()
    trainer = Trainer(network=network, rng=0)

    trial = Trial(rng.normal(size=40), np.zeros(40), 3)
    trial.reservoirStates[:] = rng.normal(size=(40, 3))
    w = np.array([0.3, -1.2, 2.0, 0.7])
    trial.output[:, 0] = np.hstack([trial.reservoirStates, trial.input]) @ w

    W = trainer.ridgeRegression([trial], ridgeParam=0.0)
    assert W.shape == (4, 1)
    assert np.allclose(W.ravel(), w, atol=1e-4)


def test_design_matrix_skips_first_quarter_of_each_trial():
    network = EchoStateNetwork(inputSize=1, outputSize=1, reservoirSize=3, randomSeed=0).init()
    trainer = Trainer(network=network, rng=0)
    short = Trial(np.zeros(20), np.zeros(20), 3)
    long = Trial(np.zeros(24), np.zeros(24), 3)
    with pytest.warns(UserWarning):
        A, B = trainer.designMatrices([short, long])
    assert A.shape == (15 + 18, 4)
    assert B.shape == (33, 1)


def test_partition_always_has_test_and_training_trial():
    store = TrialStore(rng=0)
    for i in range(2):
        store.add(Trial(np.zeros(8), np.zeros(8), 3, classId=i))

    store.partition(0.0)
    assert len(store.testSet()) == 1
    assert len(store.trainingSet()) == 1

    store.partition(1.0)
    assert len(store.testSet()) == 1
    assert len(store.trainingSet()) == 1


def test_partition_needs_two_trials():
    store = TrialStore(rng=0)
    store.add(Trial(np.zeros(8), np.zeros(8), 3))
    with pytest.raises(ConfigurationError):
        store.partition()
    with pytest.raises(ConfigurationError):
        store.trainingSet()


def test_adding_a_trial_resets_partition():
    store = TrialStore(rng=0)
    for i in range(3):
        store.add(Trial(np.zeros(8), np.zeros(8), 3, classId=i))
    store.partition()
    assert store.partitioned
    store.add(Trial(np.zeros(8), np.zeros(8), 3))
    assert not store.partitioned


def test_add_trial_requires_initialized_network():
    trainer = Trainer(network=EchoStateNetwork(inputSize=1, outputSize=1), rng=0)
    with pytest.raises(PreconditionViolation):
        trainer.addTrial(np.zeros(10), np.zeros(10))


def test_add_trial_length():
    trainer = Trainer(rng=0)
    trial = trainer.addTrial(np.zeros(30), np.zeros(30), length=25, id=7)
    assert trial.sampleCount == 25
    assert trial.classId == 7
    assert trial.teacherWindowSize == 5
    with pytest.raises(PreconditionViolation):
        trainer.addTrial(np.zeros(10), np.zeros(10), length=11)


def test_default_trainer_builds_prediction_network():
    trainer = Trainer(rng=0)
    assert trainer.network.initialized
    assert trainer.network.config.inputSize == 1
    assert trainer.network.config.outputSize == 1
    assert trainer.network.config.feedbackScale == pytest.approx(0.56)


def test_two_trial_prediction():
    trainer = scenarioTrainer()
    W = trainer.runTrials()
    assert W.shape == (11, 1)
    assert trainer.network.outputWeights.shape == (1, 11)
    assert np.allclose(trainer.network.outputWeights.ravel(), W.ravel(), atol=1e-5)

    assert len(trainer.testSet()) == 1
    teacher, result, states = trainer.runTest(0, returnStates=True)
    assert len(result) == 20
    assert np.array_equal(result[:4], teacher[:4])
    assert np.all(np.isfinite(result))
    assert states.shape == (20, 10)


def test_run_test_is_repeatable():
    trainer = scenarioTrainer()
    trainer.runTrials()
    teacher1, result1 = trainer.runTest(0)
    teacher2, result2 = trainer.runTest(0)
    assert np.array_equal(teacher1, teacher2)
    assert np.allclose(result1, result2)
    with pytest.raises(PreconditionViolation):
        trainer.runTest(1)


def test_evaluate():
    trainer = scenarioTrainer()
    trainer.runTrials()
    metrics = trainer.evaluate(0)
    assert set(metrics) == {'mse', 'rmse', 'mae', 'nrmse'}
    assert metrics['rmse'] == pytest.approx(np.sqrt(metrics['mse']))
    teacher, result = trainer.runTest(0)
    assert metrics['mse'] == pytest.approx(np.mean((teacher[4:] - result[4:]) ** 2))


def test_run_trials_with_single_trial_fails():
    trainer = Trainer(rng=0)
    trainer.addTrial(np.zeros(10), np.zeros(10))
    with pytest.raises(ConfigurationError):
        trainer.runTrials()


def test_singular_regression_keeps_readout(failingLinearAlgebra):
    trainer = scenarioTrainer()
    trainer.linearAlgebra = failingLinearAlgebra
    before = trainer.network.outputWeights.copy()
    with pytest.raises(SingularMatrixError):
        trainer.runTrials()
    assert np.array_equal(trainer.network.outputWeights, before)


def test_multiple_outputs_are_rejected():
    network = EchoStateNetwork(inputSize=1, outputSize=2, reservoirSize=5, randomSeed=0).init()
    trainer = Trainer(network=network, rng=0)
    for i in range(2):
        trainer.addTrial(np.zeros(20), np.zeros((20, 2)), id=i)
    with pytest.raises(ConfigurationError):
        trainer.runTrials()
    assert all(not trial.reservoirStates.any() for trial in trainer.store)


def test_threaded_runs_match_sequential():
    sequential = scenarioTrainer(seed=5).runTrials()
    threaded = scenarioTrainer(seed=5, nJobs=2).runTrials()
    assert np.allclose(sequential, threaded)


def test_design_matrix_dump(tmp_path):
    trainer = scenarioTrainer()
    trainer.runTrials()
    A, _ = trainer.designMatrices(trainer.trainingSet())
    path = writeMatrix(A, tmp_path / "A.txt")
    assert np.allclose(readMatrix(path), A)

# utils/metrics.py
# this module scores the self-predicted part of a teacher-testing run

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error


def calculate_metrics(teacher, prediction, teacherWindowSize=0):
    """
    Error measures over the samples after the teacher-forced window, where the
    network fed back its own output. nrmse is normalized by the teacher's range.
    """
    teacher = np.asarray(teacher)[teacherWindowSize:]
    prediction = np.asarray(prediction)[teacherWindowSize:]
    if len(teacher) == 0:
        return {'mse': np.nan, 'rmse': np.nan, 'mae': np.nan, 'nrmse': np.nan}

    mse = mean_squared_error(teacher, prediction)
    rmse = np.sqrt(mse)
    mae = mean_absolute_error(teacher, prediction)

    teacherRange = np.mean(np.ptp(teacher, axis=0))
    nrmse = rmse / teacherRange if teacherRange > 1e-9 else np.inf

    return {'mse': mse, 'rmse': rmse, 'mae': mae, 'nrmse': nrmse}

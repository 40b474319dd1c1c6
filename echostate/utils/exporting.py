# utils/exporting.py
# this module writes metrics, test trial outputs and matrices to text files

import numpy as np
import pandas as pd


def export_results(metrics, prediction, teacher, teacherWindowSize=0,
                   metrics_filename='esn_results_metrics.csv',
                   pred_filename='esn_predictions.csv'):
    """
    One metrics row, and one row per timestep of the test trial. TeacherForced
    marks the leading samples where the teacher was fed back instead of the prediction.
    """
    if metrics is None:
        return None

    df_metrics = pd.DataFrame([metrics])
    df_metrics.to_csv(metrics_filename, index=False)

    if prediction is not None and teacher is not None and len(prediction) > 0:
        prediction = np.asarray(prediction).ravel()
        steps = np.arange(len(prediction))
        pd.DataFrame({
            'Step': steps,
            'Teacher': np.asarray(teacher).ravel(),
            'Prediction': prediction,
            'TeacherForced': steps < teacherWindowSize,
        }).to_csv(pred_filename, index=False)

    return df_metrics


def writeMatrix(matrix, filename):
    # one line per row, values separated by a single space
    matrix = np.atleast_2d(np.asarray(matrix))
    pd.DataFrame(matrix).to_csv(filename, sep=' ', header=False, index=False)
    return filename


def readMatrix(filename):
    return pd.read_csv(filename, sep=' ', header=None).to_numpy()

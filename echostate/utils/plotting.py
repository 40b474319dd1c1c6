# utils/plotting.py
# this module provides functions for visualizing reservoir trajectories and prediction analysis.

import matplotlib.pyplot as plt
import numpy as np


def _finish(fig, filename):
    if filename:
        fig.savefig(filename)
        plt.close(fig)
    else:
        plt.show()


def predictionAnalysis(predictions, actuals, teacherWindowSize=0, filename=None, zoom_limit=500):
    if predictions is None or actuals is None or len(predictions) == 0:
        return

    predictions = np.asarray(predictions).ravel()
    actuals = np.asarray(actuals).ravel()
    if len(predictions) != len(actuals):
        min_len = min(len(predictions), len(actuals))
        predictions = predictions[:min_len]
        actuals = actuals[:min_len]
        if min_len == 0:
            return

    time_steps = np.arange(len(actuals))
    absolute_error = np.abs(actuals - predictions)

    fig, axes = plt.subplots(2, 1, figsize=(12, 10), sharex=False)

    zoom_actual = min(zoom_limit, len(actuals))
    axes[0].plot(time_steps[:zoom_actual], actuals[:zoom_actual], label='Teacher signal', color='steelblue', alpha=0.8)
    axes[0].plot(time_steps[:zoom_actual], predictions[:zoom_actual], label='Self-predicted signal', color='mediumpurple', linestyle='--', alpha=0.9)
    if 0 < teacherWindowSize < zoom_actual:
        axes[0].axvline(teacherWindowSize, color='gray', linestyle=':', label='End of teacher window')
    axes[0].set_ylabel('y(t)')
    axes[0].set_xlabel(f'Time Step (First {zoom_actual})')
    axes[0].legend()
    axes[0].grid(True, linestyle='--', alpha=0.5)

    axes[1].plot(time_steps, absolute_error, label='|Δ|', color='firebrick', alpha=0.8)
    axes[1].set_ylabel('|Δ|')
    axes[1].set_xlabel('Time Step')
    axes[1].grid(True, linestyle='--', alpha=0.5)
    axes[1].legend()

    fig.tight_layout(pad=2.0)
    _finish(fig, filename)


def reservoirStateImage(states, filename=None, title='Reservoir states'):
    """
    One row per timestep, one column per neuron. Values are clipped to [-1, 1],
    negative activity in blue and positive in red.
    """
    states = np.asarray(states)
    if states.ndim != 2 or states.size == 0:
        return

    fig, ax = plt.subplots(figsize=(6, 8))
    image = ax.imshow(np.clip(states, -1.0, 1.0), aspect='auto', cmap='bwr', vmin=-1.0, vmax=1.0, interpolation='nearest')
    ax.set_xlabel('Neuron')
    ax.set_ylabel('Time Step')
    ax.set_title(title)
    fig.colorbar(image, ax=ax, label='x(t)')
    fig.tight_layout()
    _finish(fig, filename)

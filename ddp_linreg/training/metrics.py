"""
Training metrics and timing utilities for the regression workers.

This module provides functionality for tracking per-round training loss of
each named model and for timing the pipeline stages (loading,
reconciliation, scaling, training, export) on a worker.

Example:
    >>> tracker = TrainingMetricsTracker()
    >>> tracker.save_round_losses('housing', [0.9, 0.4, 0.2])
    >>> tracker.get_latest_loss('housing')
    0.2
"""

import time
import numpy as np
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict, List, Optional


class TrainingMetricsTracker:
    """
    Per-model loss history.

    Attributes:
        loss_history (Dict[str, List[float]]): Global loss of every round, by model
        train_calls (Dict[str, int]): Number of completed training calls, by model
        start_time (float): Timestamp of the first recorded call
    """

    def __init__(self):
        self.loss_history = defaultdict(list)
        self.train_calls = defaultdict(int)
        self.start_time = None

    def save_round_losses(self, model_name: str, losses: List[float]) -> None:
        """
        Record the losses of one training call.

        Args:
            model_name (str): Model the losses belong to
            losses (List[float]): Global loss of each round, in order
        """
        if self.start_time is None:
            self.start_time = time.time()
        self.loss_history[model_name].extend(float(v) for v in losses)
        self.train_calls[model_name] += 1

    def get_latest_loss(self, model_name: str) -> Optional[float]:
        history = self.loss_history.get(model_name)
        return history[-1] if history else None

    def get_loss_history(self, model_name: str) -> List[float]:
        return list(self.loss_history.get(model_name, []))

    def get_best_loss(self, model_name: str) -> tuple:
        """
        Gets the lowest loss and the 1-based round it occurred in.

        Returns:
            tuple: (best_loss, best_round), or (None, None) without history
        """
        history = self.loss_history.get(model_name)
        if not history:
            return None, None
        best_idx = int(np.argmin(history))
        return history[best_idx], best_idx + 1

    def print_summary(self, rank: int = 0) -> None:
        """
        Prints a summary of training losses.

        Args:
            rank (int): Process rank (only rank 0 prints to avoid duplication)
        """
        if rank != 0:
            return

        print("\n" + "="*50)
        print("TRAINING METRICS SUMMARY")
        print("="*50)

        for model_name, history in self.loss_history.items():
            if not history:
                continue
            best_loss, best_round = self.get_best_loss(model_name)
            print(f"{model_name}:")
            print(f"  Training calls: {self.train_calls[model_name]}")
            print(f"  Rounds: {len(history)}")
            print(f"  Latest loss: {history[-1]:.6f}")
            print(f"  Best loss: {best_loss:.6f} (Round {best_round})")

        print("="*50)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'loss_history': {k: list(v) for k, v in self.loss_history.items()},
            'train_calls': dict(self.train_calls),
        }


class PerformanceProfiler:
    """
    Named wall-clock timers for pipeline stages.
    """

    def __init__(self):
        self.timings = defaultdict(list)
        self.active_timers = {}

    def start_timer(self, name: str) -> None:
        """Starts a timer with the given name."""
        self.active_timers[name] = time.time()

    def end_timer(self, name: str) -> float:
        """
        Ends a timer and records the duration.

        Args:
            name (str): Timer name

        Returns:
            float: Duration in seconds
        """
        if name not in self.active_timers:
            raise ValueError(f"Timer '{name}' was not started")

        duration = time.time() - self.active_timers.pop(name)
        self.timings[name].append(duration)
        return duration

    @contextmanager
    def timer(self, name: str):
        """Time the enclosed block under ``name``; failed blocks are not recorded."""
        self.start_timer(name)
        try:
            yield
        except BaseException:
            self.active_timers.pop(name, None)
            raise
        self.end_timer(name)

    def get_average_time(self, name: str) -> float:
        if name not in self.timings:
            return 0.0
        return float(np.mean(self.timings[name]))

    def get_total_time(self, name: str) -> float:
        if name not in self.timings:
            return 0.0
        return sum(self.timings[name])

    def print_summary(self, rank: int = 0) -> None:
        """Prints a performance summary."""
        if rank != 0:
            return

        print("\n" + "="*50)
        print("PERFORMANCE PROFILE")
        print("="*50)

        for name, times in self.timings.items():
            print(f"{name}:")
            print(f"  Count: {len(times)}")
            print(f"  Total time: {sum(times):.4f}s")
            print(f"  Average time: {np.mean(times):.4f}s")
            print(f"  Min time: {min(times):.4f}s")
            print(f"  Max time: {max(times):.4f}s")
            print()

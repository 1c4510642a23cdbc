"""Headless-safe loss curve plotting."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Optional, Tuple


class PlotAdapter:
    """Collect per-epoch loss and validation values and draw them with matplotlib."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float, Optional[float]]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if not self.enable_plots:
            return
        validation = metrics.get("validation")
        self._history.append(
            (epoch, float(metrics.get("loss", 0.0)), None if validation is None else float(validation))
        )

    def close(self) -> Optional[Path]:
        if not self.enable_plots or not self._history:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        epochs = [e for e, _, _ in self._history]
        losses = [loss for _, loss, _ in self._history]
        fig, ax = plt.subplots()
        ax.plot(epochs, losses, label="loss")
        checked = [(e, v) for e, _, v in self._history if v is not None]
        if checked:
            other = ax.twinx()
            other.plot(*zip(*checked), color="tab:orange", label="validation")
            other.set_ylabel("Validation")
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Loss")
        ax.set_title("Training Curve")
        plot_path = self.run_dir / "loss.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

    __call__ = on_epoch


__all__ = ["PlotAdapter"]

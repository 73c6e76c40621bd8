"""WAVESKETCH Signal Graph — Fixed routing from voices to the output.

    voices ─► filter ─┬─► dry ─────────────────────────────────────┬─► master ─► out
                      └─► delay ─► distortion ─► diffusion ─► wet ─┘

Built once; afterwards only targets move (gains, cutoff, delay time,
distortion curve), never the stages themselves.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import structlog
from numpy.typing import NDArray

from wavesketch.config import settings
from wavesketch.hands.effects import (
    BiquadFilter,
    DelayLine,
    Diffuser,
    Distortion,
    EffectsParams,
    FilterParams,
    SmoothedGain,
    clamp_param,
    make_impulse,
    wet_dry_levels,
)

logger = structlog.get_logger()


@dataclass
class GraphConfig:
    """Construction-time settings for the graph."""

    sample_rate: int = 44100
    max_delay_s: float = 0.3
    reverb_seconds: float = 2.0
    reverb_seed: int | None = None
    initial_master: float = 0.3

    @classmethod
    def from_settings(cls) -> GraphConfig:
        return cls(
            sample_rate=settings.sample_rate,
            max_delay_s=settings.max_delay_s,
            reverb_seconds=settings.reverb_seconds,
            reverb_seed=settings.reverb_seed,
            initial_master=settings.initial_master,
        )


class SignalGraph:
    """Shared filter, wet/dry split, send chain and master gain."""

    def __init__(
        self,
        config: GraphConfig | None = None,
        filter_params: FilterParams | None = None,
        effects: EffectsParams | None = None,
    ) -> None:
        self.config = config or GraphConfig.from_settings()
        sr = self.config.sample_rate

        self.filter = BiquadFilter(filter_params or FilterParams(), sr)
        self.delay = DelayLine(self.config.max_delay_s, sr)
        self.distortion = Distortion(0.0)
        self.diffuser = Diffuser(
            make_impulse(self.config.reverb_seconds, sr, self.config.reverb_seed)
        )

        self.dry = SmoothedGain(1.0)
        self.wet = SmoothedGain(0.0)
        self.effects_gain = SmoothedGain(1.0)
        self.master = SmoothedGain(self.config.initial_master)

        self.effects = EffectsParams()
        self.set_effects(effects or EffectsParams())

    # ── Parameters ──

    @property
    def filter_params(self) -> FilterParams:
        return self.filter.params

    def set_filter(self, params: FilterParams) -> None:
        self.filter.set(params)

    def set_effects(self, params: EffectsParams) -> None:
        """Re-derive wet/dry, delay time and distortion curve from one update."""
        params = params.clamped()
        dry, wet = wet_dry_levels(params)
        self.dry.set(dry)
        self.wet.set(wet)
        self.effects_gain.set(1.0)
        self.delay.set_delay(params.delay_pct / 100.0 * self.config.max_delay_s)
        self.distortion.set_amount(params.distortion_pct * 50.0)
        self.effects = params
        logger.debug("Effects updated", dry=round(dry, 3), wet=round(wet, 3))

    def set_master_volume(self, pct: float) -> None:
        self.master.set(clamp_param("master_volume", pct, 0.0, 100.0) / 100.0)

    @property
    def master_volume(self) -> float:
        """Target master gain, 0-1."""
        return self.master.target

    # ── Processing ──

    def process(self, voices: NDArray[np.float64]) -> NDArray[np.float64]:
        """Run one block of summed voice audio through the graph."""
        n = len(voices)
        if n == 0:
            return np.zeros(0, dtype=np.float64)

        voices = np.nan_to_num(voices, nan=0.0, posinf=0.0, neginf=0.0)
        filtered = self.filter.process(voices)
        dry = filtered * self.dry.ramp(n)

        sent = self.delay.process(filtered)
        sent = self.distortion.process(sent)
        sent = self.diffuser.process(sent)
        wet = sent * self.wet.ramp(n) * self.effects_gain.ramp(n)

        out = (dry + wet) * self.master.ramp(n)
        return np.nan_to_num(out, nan=0.0, posinf=0.0, neginf=0.0)

"""WAVESKETCH API — Synth routes (waveform, parameters, notes)."""

from __future__ import annotations

from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from wavesketch.api.deps import get_engine
from wavesketch.engine import SynthEngine
from wavesketch.hands.curve import as_curve, prepare
from wavesketch.hands.effects import EffectsParams, FilterParams
from wavesketch.hands.envelope import EnvelopeParams
from wavesketch.hands.output import DeviceInitError
from wavesketch.hands.presets import PRESETS, key_frequency, load_preset

router = APIRouter(prefix="/synth", tags=["synth"])

Engine = Annotated[SynthEngine, Depends(get_engine)]


# ── Models ───────────────────────────────────────────────


class PointModel(BaseModel):
    """One drawn point."""

    x: float
    y: float


class WaveformRequest(BaseModel):
    """Curve to load into the engine."""

    points: list[PointModel]
    prepare: bool = False  # smooth + normalize first (end of a drawing gesture)


class EnvelopeRequest(BaseModel):
    attack_ms: float = Field(100.0, ge=0)
    decay_ms: float = Field(300.0, ge=0)
    sustain_pct: float = Field(70.0, ge=0, le=100)
    release_ms: float = Field(500.0, ge=0)


class FilterRequest(BaseModel):
    """Out-of-range values are clamped by the engine, not rejected."""

    cutoff_hz: float = 2000.0
    resonance_q: float = 1.0
    kind: str = "lowpass"


class EffectsRequest(BaseModel):
    reverb_pct: float = 25.0
    delay_pct: float = 15.0
    distortion_pct: float = 0.0
    chorus_pct: float = 20.0


class VolumeRequest(BaseModel):
    percent: float = 75.0


class NoteOnRequest(BaseModel):
    """freq_hz defaults to the note table entry for the key."""

    freq_hz: float | None = Field(None, gt=0)


# ── Helpers ──────────────────────────────────────────────


def _tone_summary(engine: SynthEngine) -> dict[str, Any]:
    tone = engine.tone
    mags = tone.magnitudes
    return {
        "name": tone.name,
        "harmonics": tone.n_harmonics,
        "magnitudes": [round(float(m), 5) for m in mags[1:]],
    }


# ── Lifecycle ────────────────────────────────────────────


@router.post("/start")
async def start_engine(engine: Engine) -> dict[str, Any]:
    """Open the output device (the one-time user-gesture step)."""
    try:
        await engine.initialize()
    except DeviceInitError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return {"active": engine.is_active, "sample_rate": engine.sr}


@router.get("/state")
def get_state(engine: Engine) -> dict[str, Any]:
    """Current parameters, held notes and tone summary."""
    return {
        "active": engine.is_active,
        "held": engine.voices.held_keys,
        "voices": len(engine.voices),
        "envelope": asdict(engine.envelope),
        "filter": asdict(engine.filter),
        "effects": asdict(engine.effects),
        "master_pct": engine.master_pct,
        "tone": _tone_summary(engine),
    }


# ── Waveform ─────────────────────────────────────────────


@router.get("/waveform")
def get_waveform(engine: Engine) -> dict[str, Any]:
    """Current curve and the cycle to draw (a sine until something is loaded)."""
    return {
        "points": [p.to_dict() for p in engine.curve],
        "cycle": [round(float(v), 5) for v in engine.display_cycle],
    }


@router.post("/waveform")
def update_waveform(req: WaveformRequest, engine: Engine) -> dict[str, Any]:
    """Load a curve, rebuild the tone and return its analysis."""
    curve = as_curve(p.model_dump() for p in req.points)
    if req.prepare:
        curve = prepare(curve)
    engine.update_waveform(curve)
    return {
        "points": [p.to_dict() for p in curve],
        "analysis": engine.analyze(curve).to_dict(),
        "tone": _tone_summary(engine),
    }


@router.post("/analyze")
def analyze_waveform(req: WaveformRequest, engine: Engine) -> dict[str, Any]:
    """Metrics only; the engine's tone is left alone."""
    curve = as_curve(p.model_dump() for p in req.points)
    if req.prepare:
        curve = prepare(curve)
    return engine.analyze(curve).to_dict()


@router.get("/presets")
def list_presets() -> dict[str, dict[str, str]]:
    """List stock curve presets."""
    return {
        key: {"name": preset.name, "description": preset.description}
        for key, preset in PRESETS.items()
    }


@router.post("/presets/{name}")
def load_preset_route(name: str, engine: Engine, seed: int | None = None) -> dict[str, Any]:
    """Load a stock preset (smoothed + normalized) as the current waveform."""
    if name not in PRESETS:
        raise HTTPException(status_code=404, detail=f"Unknown preset: {name}")
    curve = prepare(load_preset(name, seed=seed))
    engine.update_waveform(curve)
    return {
        "preset": name,
        "points": [p.to_dict() for p in curve],
        "analysis": engine.analyze(curve).to_dict(),
        "tone": _tone_summary(engine),
    }


# ── Parameters ───────────────────────────────────────────


@router.put("/envelope")
def set_envelope(req: EnvelopeRequest, engine: Engine) -> dict[str, float]:
    engine.set_envelope(EnvelopeParams(**req.model_dump()))
    return asdict(engine.envelope)


@router.put("/filter")
def set_filter(req: FilterRequest, engine: Engine) -> dict[str, Any]:
    engine.set_filter(FilterParams(**req.model_dump()))
    return asdict(engine.filter)


@router.put("/effects")
def set_effects(req: EffectsRequest, engine: Engine) -> dict[str, float]:
    engine.set_effects(EffectsParams(**req.model_dump()))
    return asdict(engine.effects)


@router.put("/volume")
def set_volume(req: VolumeRequest, engine: Engine) -> dict[str, float]:
    engine.set_master_volume(req.percent)
    return {"master_pct": engine.master_pct}


# ── Notes ────────────────────────────────────────────────


@router.post("/notes/{key}/on")
def note_on(key: str, engine: Engine, req: NoteOnRequest | None = None) -> dict[str, Any]:
    """Start a note. 409 while the engine has not been started."""
    if not engine.is_active:
        raise HTTPException(status_code=409, detail="Audio engine is not active")
    freq = (req.freq_hz if req else None) or key_frequency(key)
    engine.note_on(key, freq)
    return {"key": key, "freq_hz": freq, "voices": len(engine.voices)}


@router.post("/notes/{key}/off")
def note_off(key: str, engine: Engine) -> dict[str, Any]:
    engine.note_off(key)
    return {"key": key, "voices": len(engine.voices)}


@router.post("/notes/stop-all")
def stop_all(engine: Engine) -> dict[str, Any]:
    engine.stop_all()
    return {"held": engine.voices.held_keys, "voices": len(engine.voices)}

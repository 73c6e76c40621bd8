"""HANDS — Synthesis layer.

- Curve: smoothing / normalisation of drawn points
- Synth: curve → harmonic tone table, wavetable oscillator
- Voices: per-key voices with ADSR gain automation
- Effects / Graph: shared filter, send chain, master gain
- Output: sounddevice stream, null sink, WAV bounce
"""

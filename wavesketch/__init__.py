"""WAVESKETCH — Draw a waveform, play it as a polyphonic synth voice."""

__version__ = "0.1.0"

"""WAVESKETCH FastAPI server — main application."""

from fastapi import Depends, FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from wavesketch.api.deps import get_engine
from wavesketch.api.routes.synth import router as synth_router
from wavesketch.api.websocket import notes_endpoint
from wavesketch.engine import SynthEngine

app = FastAPI(
    title="WAVESKETCH",
    description="Draw a waveform, play it as a synth.",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(synth_router, prefix="/api")


@app.websocket("/ws/notes")
async def ws_notes(websocket: WebSocket, engine: SynthEngine = Depends(get_engine)) -> None:
    """WebSocket for real-time note on/off events."""
    await notes_endpoint(websocket, engine)


# ── Public routes ──
@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "service": "wavesketch"}


@app.get("/api/info")
async def info() -> dict[str, object]:
    """System information and capabilities."""
    from wavesketch import __version__

    return {
        "name": "WAVESKETCH",
        "version": __version__,
        "layers": {
            "ear": "Waveform analysis",
            "hands": "Synthesis, voices & effects",
        },
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "synth": "/api/synth",
            "notes": "/ws/notes",
        },
    }


def main() -> None:
    """Run the API with uvicorn using the configured host/port."""
    import uvicorn

    from wavesketch.config import settings

    uvicorn.run(app, host=settings.host, port=settings.port)

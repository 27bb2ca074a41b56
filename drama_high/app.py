import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from drama_high import config
from drama_high.audio import AudioEngine, OfflineBackend, SoundDeviceBackend
from drama_high.generator import EchoGenerator, Generator, HttpGenerator
from drama_high.routes import router
from drama_high.session import Session
from drama_high.storage import FileBlobStore

load_dotenv(Path(__file__).parent.parent / ".env")

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


def build_generator(settings: dict) -> Generator:
    gen = settings["generator"]
    if gen.get("echo"):
        logger.info("Using EchoGenerator (no model backend)")
        return EchoGenerator()
    return HttpGenerator(
        provider_url=gen["provider_url"],
        api_key=gen["api_key"],
        story_model=gen["story_model"],
        fast_model=gen["fast_model"],
        image_model=gen["image_model"],
        timeout=float(gen["timeout"]),
        player_name=settings["player_name"],
    )


def build_audio(settings: dict) -> AudioEngine:
    audio = settings["audio"]
    sample_rate = int(audio["sample_rate"])
    if audio["enabled"]:
        factory = lambda: SoundDeviceBackend(sample_rate)  # noqa: E731
    else:
        factory = lambda: OfflineBackend(sample_rate)  # noqa: E731
    return AudioEngine(factory, volume=float(audio["volume"]))


def create_app(
    data_dir: Path | None = None,
    generator: Generator | None = None,
    audio: AudioEngine | None = None,
) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    resolved.mkdir(parents=True, exist_ok=True)
    settings = config.get_config(resolved)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.session.close()

    app = FastAPI(title="Drama High", lifespan=lifespan)
    app.state.data_dir = resolved
    app.state.session = Session(
        generator=generator or build_generator(settings),
        audio=audio or build_audio(settings),
        store=FileBlobStore(resolved),
    )
    app.include_router(router, prefix="/api")
    return app

"""Drama High — dev launcher. Starts the API server in watch mode."""

import argparse
import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "13015"))


def main():
    parser = argparse.ArgumentParser(description="Drama High dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--echo", action="store_true",
                        help="Use the echo generator instead of a model backend")
    parser.add_argument("--no-audio", action="store_true",
                        help="Do not open the audio output device")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.data_dir or args.echo or args.no_audio:
        from drama_high import config
        data_dir = (args.data_dir or ROOT / "data").resolve()
        fields: dict = {}
        if args.echo:
            fields["generator"] = {"echo": True}
        if args.no_audio:
            fields["audio"] = {"enabled": False}
        config.update_config(data_dir, fields)
        # The server process picks the data dir up from the environment.
        os.environ["DATA_DIR"] = str(data_dir)

    print(f"Starting Drama High on http://localhost:{PORT} ...")
    uvicorn.run(
        "drama_high.app:create_app",
        factory=True,
        host=HOST,
        port=PORT,
        reload=True,
        reload_dirs=[str(ROOT / "drama_high")],
    )


if __name__ == "__main__":
    main()

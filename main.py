"""Reckoning dev launcher. Starts the backend in watch mode."""

import argparse
import os
import subprocess
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")


def main():
    parser = argparse.ArgumentParser(description="Reckoning dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Clean and create a demo game")
    parser.add_argument("--mock-ai", action="store_true",
                        help="Use the built-in mock provider instead of a real backend")
    args = parser.parse_args()

    data_dir = args.data_dir or ROOT / "data"
    if args.demo:
        from backend.context import build_context
        from backend.demo import create_demo_data
        ctx = build_context(data_dir, use_mock=True)
        game = create_demo_data(ctx.storage, ctx.engine)
        print(f"Demo game {game.id} created in {data_dir}")

    # Build env for the subprocess so the backend picks up the same settings
    env = os.environ.copy()
    env["DATA_DIR"] = str(Path(data_dir).resolve())
    if args.mock_ai:
        env["USE_MOCK_AI"] = "true"

    print(f"Starting backend on http://localhost:{BACKEND_PORT} ...")
    proc = subprocess.Popen(
        ["uv", "run", "uvicorn", "backend.app:app", "--reload", "--host", HOST, "--port", BACKEND_PORT],
        cwd=ROOT, env=env,
    )
    try:
        proc.wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
        proc.terminate()
        proc.wait()


if __name__ == "__main__":
    main()

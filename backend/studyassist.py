from __future__ import annotations

import argparse
import sys

from smartstudy.settings import settings


def run_server(host: str, port: int, reload: bool) -> None:
    # Import here so terminal mode doesn't require uvicorn installed
    import uvicorn  # type: ignore

    uvicorn.run(
        "smartstudy.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


def run_terminal(argv: list[str]) -> None:
    from study_cli import main as cli_main  # type: ignore

    old_argv = sys.argv[:]
    try:
        sys.argv = ["study_cli.py", *argv]
        cli_main()
    finally:
        sys.argv = old_argv


def main() -> None:
    parser = argparse.ArgumentParser(description="Smart Study Assistant Launcher (API server or Terminal)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default=settings.host, help=f"Bind host (default: {settings.host})")
    p_serve.add_argument("--port", type=int, default=settings.port, help=f"Port (default: {settings.port})")
    p_serve.add_argument("--reload", action="store_true", help="Enable auto-reload")

    p_term = sub.add_parser("terminal", help="Run the terminal study client")
    p_term.add_argument("--mode", default="standard", choices=["standard", "math"])
    p_term.add_argument("--wrap", type=int, default=100, help="Wrap width")

    args, extras = parser.parse_known_args()

    if args.cmd == "serve":
        run_server(args.host, args.port, args.reload)

    if args.cmd == "terminal":
        run_terminal(["--mode", args.mode, "--wrap", str(args.wrap), *extras])


if __name__ == "__main__":
    main()

from __future__ import annotations

import argparse
import importlib
import logging
import subprocess
import sys
import unittest
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from titanic_insights.config import AppConfig
from titanic_insights.gateway import create_app
from titanic_insights.logging_utils import setup_logging

TEST_MODULES = (
    "tests.test_charts",
    "tests.test_cli",
    "tests.test_config",
    "tests.test_gateway",
    "tests.test_gateway_client",
    "tests.test_llm_clients",
    "tests.test_logging_utils",
    "tests.test_orchestrator",
    "tests.test_planner",
    "tests.test_sql_policy",
    "tests.test_store",
)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="titanic-insights",
        description="Titanic Insights: query gateway and chat UI.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the SQL query gateway.")
    serve.add_argument("--host", default=None, help="Bind address (default: GATEWAY_HOST).")
    serve.add_argument("--port", type=int, default=None, help="Port (default: GATEWAY_PORT).")

    chat = subparsers.add_parser(
        "chat",
        help="Launch the Streamlit chat UI. Tests run first by default.",
    )
    chat.add_argument(
        "--skip-tests",
        action="store_true",
        help="Skip unit tests before launching Streamlit.",
    )
    chat.add_argument(
        "--test-verbosity",
        type=int,
        choices=(0, 1, 2),
        default=2,
        help="Verbosity for unit test output.",
    )
    chat.add_argument(
        "streamlit_args",
        nargs=argparse.REMAINDER,
        help="Additional arguments passed to `streamlit run`.",
    )
    return parser.parse_args(argv)


def _run_unit_tests(verbosity: int) -> bool:
    loader = unittest.defaultTestLoader
    suite = unittest.TestSuite()
    for module_name in TEST_MODULES:
        suite.addTests(loader.loadTestsFromName(module_name))

    runner = unittest.TextTestRunner(verbosity=verbosity)
    result = runner.run(suite)
    return result.wasSuccessful()


def _resolve_app_path() -> Path:
    app_module = importlib.import_module("app")
    return Path(app_module.__file__).resolve()


def _launch_streamlit(app_path: Path, streamlit_args: list[str]) -> int:
    extra_args = list(streamlit_args)
    if extra_args and extra_args[0] == "--":
        extra_args = extra_args[1:]

    command = [sys.executable, "-m", "streamlit", "run", str(app_path), *extra_args]
    completed = subprocess.run(command, check=False)
    return completed.returncode


def _serve(config: AppConfig, host: str | None, port: int | None) -> int:
    app = create_app(config=config)
    uvicorn.run(
        app,
        host=host or config.gateway_host,
        port=port or config.gateway_port,
        log_config=None,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    load_dotenv()
    config = AppConfig.from_env()
    setup_logging(config.log_dir, log_level=logging.INFO)

    if args.command == "serve":
        return _serve(config, args.host, args.port)

    if not args.skip_tests:
        tests_ok = _run_unit_tests(verbosity=args.test_verbosity)
        if not tests_ok:
            return 1

    app_path = _resolve_app_path()
    return _launch_streamlit(app_path, args.streamlit_args)


if __name__ == "__main__":
    raise SystemExit(main())

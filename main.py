from __future__ import annotations

import argparse
import logging
import sys
import traceback
from pathlib import Path

from photocrop.config import get_user_data_dir
from photocrop.constants import SEND_TO_APP_ID

_log = logging.getLogger("photocrop.main")


def get_log_file_path() -> Path:
    return get_user_data_dir() / "Logs" / "photocrop.log"


def _setup_logging() -> Path | None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file: Path | None = get_log_file_path()
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    except OSError:
        log_file = None
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
    )
    return log_file


def _filter_platform_startup_args(argv: list[str]) -> list[str]:
    """Drop arguments injected by the platform launcher (macOS ``-psn_``)."""
    filtered_args: list[str] = []
    for arg in argv:
        if sys.platform == "darwin" and arg.startswith("-psn_"):
            continue
        filtered_args.append(arg)
    return filtered_args


def _install_exception_logging() -> None:
    """Windowed builds have no console: send uncaught exceptions to the log."""

    def _log_uncaught_exception(exc_type, exc_value, exc_tb) -> None:
        message = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
        _log.error("uncaught exception\n%s", message.rstrip())
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = _log_uncaught_exception


def main() -> None:
    log_file = _setup_logging()
    _install_exception_logging()
    _log.info("startup argv=%s", sys.argv[1:])
    if log_file:
        _log.info("log file=%s", log_file)

    from photocrop.send_to_app import get_initial_file_list_from_argv, send_file_list_to_running_app

    # files passed as positional arguments, up to the first option
    initial_file_list = get_initial_file_list_from_argv(_filter_platform_startup_args(sys.argv[1:]))
    _log.info("initial_file_list count=%s", len(initial_file_list))
    if initial_file_list:
        if send_file_list_to_running_app(SEND_TO_APP_ID, initial_file_list):
            _log.info("forwarded startup files to running instance, exiting current process")
            sys.exit(0)

    parser = argparse.ArgumentParser(description="Launch PhotoCrop.")
    parser.add_argument("files", nargs="*", type=Path, help="Image files to open.")
    parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help="Open this image file on startup.",
    )
    filtered_args = _filter_platform_startup_args(sys.argv[1:])
    args = parser.parse_args(filtered_args)

    if args.files:
        startup_files = [path.resolve(strict=False) for path in args.files]
    elif args.file:
        startup_files = [args.file.resolve(strict=False)]
    else:
        startup_files = []
    _log.info("startup_files=%s", [str(path) for path in startup_files])

    try:
        from photocrop.gui import launch_gui
    except Exception as exc:
        _log.error("GUI import failed: %s", exc)
        raise SystemExit(f"GUI is unavailable: {exc}") from exc

    _log.info("launching GUI")
    launch_gui(startup_files=startup_files)
    _log.info("GUI returned normally")


if __name__ == "__main__":
    main()

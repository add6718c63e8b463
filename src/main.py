#!/usr/bin/env python3
"""
keytrace - Main Entry Point

Captures global keyboard events and appends them to a log file until
Escape is pressed.

Pipeline:
    keyboard hook (own thread) → KeyboardTracker → EventStream
        → LogWriterSink (asyncio worker) → BufferedLogWriter → file

Usage:
    keytrace [--out PATH] [--buffer-size N] [--config FILE]
             [--log-level LEVEL] [--no-color]
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from hardware.input.keyboard import create_keyboard_hook
from lifecycle import ShutdownCoordinator, TaskCategory, create_tracked_task
from lifecycle.handlers import LogWriterShutdownHandler, TaskCancellationHandler, TrackerShutdownHandler
from managers import ConfigManager
from models.errors import ConfigError, SourceRegistrationError
from services import BufferedLogWriter, KeyboardTracker, LogWriterSink
from utils.logger import configure_logger, get_logger, LogCategory

log = get_logger().for_category(LogCategory.SYSTEM)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="keytrace",
        description="Log global keyboard events to a file until Escape is pressed"
    )
    parser.add_argument("-o", "--out", dest="path", help="Output log file (default: out.txt)")
    parser.add_argument("-b", "--buffer-size", dest="buffer_size", type=int,
                        help="Lines kept in memory before flushing (default: 25)")
    parser.add_argument("-c", "--config", help="YAML configuration file")
    parser.add_argument("--log-level", dest="log_level", choices=["DEBUG", "INFO", "WARN", "ERROR"],
                        help="Console log level")
    parser.add_argument("--no-color", dest="colors", action="store_false", default=None,
                        help="Disable ANSI colors in console output")
    return parser.parse_args(argv)


async def main(args: argparse.Namespace) -> int:
    """Main async entry point (wiring and event loop). Returns the exit code."""

    # ========================================================================
    # 1. CONFIGURATION
    # ========================================================================

    try:
        config = ConfigManager(args.config).load(overrides={
            "path": args.path,
            "buffer_size": args.buffer_size,
            "log_level": args.log_level,
            "colors": args.colors,
        })
    except ConfigError as e:
        log.error(f"Invalid configuration: {e.message}")
        return 2

    configure_logger(min_level=config.logging.level, use_colors=config.logging.colors)

    # ========================================================================
    # 2. PIPELINE
    # ========================================================================

    try:
        hook = create_keyboard_hook()
    except SourceRegistrationError as e:
        log.error(f"An error occurred: {e.message}")
        return 1

    writer = BufferedLogWriter(config.output.path, capacity=config.output.buffer_size)
    tracker = KeyboardTracker(hook)
    loop = asyncio.get_running_loop()

    coordinator = ShutdownCoordinator()
    coordinator.setup_signal_handlers(loop)

    sink = LogWriterSink(writer)
    sink.attach(tracker.events)

    # Subscribed after the sink: the sink sees completion first
    tracker.subscribe(
        on_complete=lambda: coordinator.request_shutdown("Termination key pressed"),
        name="shutdown_trigger"
    )

    sink_task = create_tracked_task(
        sink.run(),
        category=TaskCategory.PERSISTENCE,
        description="Log writer sink"
    )

    # ========================================================================
    # 3. CAPTURE (separate execution context)
    # ========================================================================

    async def start_capture():
        await loop.run_in_executor(None, tracker.start)

    capture_task = create_tracked_task(
        start_capture(),
        category=TaskCategory.INPUT,
        description="Keyboard hook registration"
    )

    # ========================================================================
    # 4. SHUTDOWN
    # ========================================================================

    coordinator.register(TrackerShutdownHandler(tracker))
    coordinator.register(LogWriterShutdownHandler(sink, sink_task))
    coordinator.register(TaskCancellationHandler([capture_task, sink_task]))

    log.info(
        "🏁 Tracking keyboard. Press Escape to finish.",
        output=config.output.path,
        buffer_size=config.output.buffer_size
    )

    await coordinator.wait_for_shutdown()
    await coordinator.shutdown_all()

    if coordinator.failed:
        log.error("Keyboard tracking stopped after a failure", reason=coordinator.reason)
        return 1

    log.info("👋 keytrace finished", lines=writer.lines_written, output=config.output.path)
    return 0


def run(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""
    args = parse_args(argv)
    exit_code = 1
    try:
        exit_code = asyncio.run(main(args))
    except KeyboardInterrupt:
        log.info("Keyboard interrupt received")
        exit_code = 130
    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# ENTRY POINT
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run()

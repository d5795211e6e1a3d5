#!/usr/bin/env python3
"""Unified entry point for wei.

Starts the REST API and the background worker (and the MCP server when it
is configured for SSE) as subprocesses, and stops everything together.
"""

import logging
import os
import signal
import subprocess
import sys
import time
from typing import List, Tuple

from config import settings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

processes: List[Tuple[str, subprocess.Popen]] = []
shutdown_requested = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    if shutdown_requested:
        logger.warning("Force shutdown requested")
        sys.exit(1)

    shutdown_requested = True
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_services()


def shutdown_services():
    """Stop all running services."""
    logger.info("Stopping all services...")
    for name, process in processes:
        if process.poll() is None:
            logger.info(f"Terminating {name} (PID: {process.pid})")
            process.terminate()

    # Wait for graceful termination (max 5 seconds per process)
    for name, process in processes:
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning(f"Force killing {name} (PID: {process.pid})")
            process.kill()
            process.wait()

    logger.info("All services stopped")
    sys.exit(0)


def services_to_start() -> List[Tuple[str, List[str]]]:
    """(name, command) for every service this host should run."""
    services = [("API server", [sys.executable, "api_server.py"])]
    if settings.MCP_TRANSPORT.lower() == "sse":
        services.append(("MCP server", [sys.executable, "mcp_server.py"]))
    if settings.WORKER_ENABLED:
        services.append(("background worker", [sys.executable, "background_worker.py"]))
    return services


def main():
    """Main entry point - start all services."""
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    logger.info("=" * 60)
    logger.info("wei - Unified Startup")
    logger.info("=" * 60)

    current_dir = os.path.dirname(os.path.abspath(__file__))

    try:
        for name, command in services_to_start():
            logger.info(f"Starting {name}...")
            process = subprocess.Popen(command, cwd=current_dir)
            processes.append((name, process))
            time.sleep(2)

        logger.info("=" * 60)
        logger.info("All services started successfully!")
        logger.info(f"  - API Server: http://{settings.API_HOST}:{settings.API_PORT}")
        logger.info(f"  - API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")
        logger.info("=" * 60)

        while not shutdown_requested:
            for name, process in processes:
                if process.poll() is not None:
                    logger.error(f"{name} (PID: {process.pid}) has stopped unexpectedly!")
                    shutdown_services()
            time.sleep(5)

    except Exception as e:
        logger.error(f"Error starting services: {e}")
        shutdown_services()


if __name__ == "__main__":
    main()

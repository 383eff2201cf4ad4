#!/usr/bin/env python3
"""
Live Session Smoke Script
=========================

Standalone script to exercise a realtime session against a live endpoint.

This script:
    1. Opens a session against the configured (or given) endpoint
    2. Optionally types a prompt character by character to exercise throttling
    3. Logs session stats every few seconds
    4. Reports a final summary

Prerequisites:
    - A realtime proxy must be reachable at the configured URL
    - Install the package: pip install -e .

Usage:
    python scripts/smoke_session.py --duration 30
    python scripts/smoke_session.py --base-url ws://localhost:3000/api/realtime --type "a red fox"
"""

import argparse
import asyncio
import logging
import time

from lightning_realtime.config import load_config
from lightning_realtime.sync import RealtimeSession


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def type_prompt(session: RealtimeSession, text: str, keystroke_delay: float) -> None:
    """Feed `text` into the prompt one character at a time."""
    typed = ""
    for char in text:
        typed += char
        session.set_prompt(typed)
        await asyncio.sleep(keystroke_delay)


async def run_smoke(
    config_path: str,
    base_url: str,
    duration: int,
    report_interval: int,
    text: str,
) -> dict:
    """
    Run the smoke session.

    Returns:
        Final status dict
    """
    settings = load_config(config_path)
    if base_url:
        settings.connection.base_url = base_url

    logger.info("=" * 60)
    logger.info("Realtime Session Smoke Run")
    logger.info("=" * 60)
    logger.info(f"Endpoint: {settings.connection.endpoint_url}")
    logger.info(f"Duration: {duration} seconds")
    logger.info(f"Throttle: {settings.connection.throttle_interval_ms}ms")
    logger.info("=" * 60)

    start_time = time.time()
    last_report_time = start_time

    async with RealtimeSession(settings) as session:
        if text:
            asyncio.create_task(type_prompt(session, text, keystroke_delay=0.02))

        while time.time() - start_time < duration:
            if time.time() - last_report_time >= report_interval:
                status = session.status()
                metrics = status["connection"]["metrics"] or {}
                display = session.display
                logger.info("-" * 40)
                logger.info(f"  Connection: {status['connection']['state']}")
                logger.info(f"  Submitted: {metrics.get('frames_submitted')}")
                logger.info(f"  Transmitted: {metrics.get('frames_transmitted')}")
                logger.info(f"  Coalesced: {status['connection']['frames_coalesced']}")
                logger.info(f"  Results: {metrics.get('results_received')}")
                logger.info(f"  Rotator ticks: {status['rotator']['ticks']}")
                if display is not None:
                    logger.info(f"  Last inference: {display.inference_ms}ms")
                logger.info(f"  Errors: {status['errors']['total']}")
                last_report_time = time.time()

            await asyncio.sleep(0.5)

        final = session.status()

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {time.time() - start_time:.1f} seconds")
    logger.info(f"Metrics: {final['connection']['metrics']}")
    logger.info(f"Errors: {final['errors']}")
    logger.info("=" * 60)

    results = (final["connection"]["metrics"] or {}).get("results_received", 0)
    if results > 0:
        logger.info("SMOKE PASSED - results received")
    else:
        logger.error("SMOKE FAILED - no results received")

    return final


def main():
    parser = argparse.ArgumentParser(description="Realtime session smoke run")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--base-url", type=str, default="", help="Override connection.base_url")
    parser.add_argument("--duration", type=int, default=30, help="Run time in seconds (default: 30)")
    parser.add_argument("--report-interval", type=int, default=5, help="Seconds between reports")
    parser.add_argument("--type", dest="text", type=str, default="", help="Prompt text to type")

    args = parser.parse_args()

    asyncio.run(
        run_smoke(
            config_path=args.config,
            base_url=args.base_url,
            duration=args.duration,
            report_interval=args.report_interval,
            text=args.text,
        )
    )


if __name__ == "__main__":
    main()

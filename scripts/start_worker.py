#!/usr/bin/env python3
# =============================================================================
# scripts/start_worker.py - Spraxe Worker Launcher
# =============================================================================
# Runs a Celery worker that consumes the email and default queues and, unless
# told otherwise, embeds beat for the hourly ticket auto-close and the
# monthly report snapshot.
#
# Usage:
#   python scripts/start_worker.py
#   python scripts/start_worker.py --no-beat --concurrency 4
#   python scripts/start_worker.py --queues email
#
# Needs Redis reachable at REDIS_URL and the Supabase/Brevo variables from .env.
# Run only one worker with beat enabled, or scheduled jobs fire twice.
# =============================================================================

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workers.celery_app import celery_app


def build_argv(args: argparse.Namespace) -> list[str]:
    argv = [
        "worker",
        f"--loglevel={args.loglevel}",
        f"--concurrency={args.concurrency}",
        "-Q", args.queues,
    ]
    if not args.no_beat:
        argv.append("-B")
    return argv


def main():
    parser = argparse.ArgumentParser(description="Start the Spraxe Celery worker")
    parser.add_argument("--no-beat", action="store_true", help="Do not run scheduled jobs in this worker")
    parser.add_argument("--concurrency", type=int, default=2)
    parser.add_argument("--queues", default="default,email", help="Comma-separated queue names")
    parser.add_argument("--loglevel", default="info")
    args = parser.parse_args()

    print(f"Spraxe worker: queues={args.queues} beat={'off' if args.no_beat else 'on'} (Ctrl+C to stop)")
    celery_app.worker_main(build_argv(args))


if __name__ == "__main__":
    main()

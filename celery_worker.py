#!/usr/bin/env python3
"""
Celery worker for the apparel store.
Run this script to process queued order confirmation emails.
"""

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

if __name__ == "__main__":
    from core.celery import celery_app
    from core.config import settings

    celery_app.start([
        "worker",
        f"--loglevel={'debug' if settings.DEBUG else 'info'}",
        "--concurrency=2",
        "--without-gossip",
        "--without-mingle",
    ])

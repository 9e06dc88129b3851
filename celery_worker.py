#!/usr/bin/env python3
"""
Celery worker for the farm market API.
Consumes the e-mail queue: order, preorder, cancellation and offer notifications.
"""

from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    from core.celery import EMAIL_QUEUE, celery_app
    from core.logging import configure_logging

    configure_logging()
    celery_app.start([
        "worker",
        "--loglevel=info",
        f"--queues={EMAIL_QUEUE}",
        "--concurrency=2",
        "--without-gossip",
        "--without-mingle",
    ])

"""ARQ worker configuration."""
import httpx

from portal.utils.logger import logger
from portal.workers.redis_config import redis_settings

# Import the actual task functions
from portal.workers.tasks import send_notification


async def startup(ctx):
    """Worker startup hook."""
    logger.info("Notification worker starting up...")
    ctx["http_client"] = httpx.AsyncClient(timeout=10.0)


async def shutdown(ctx):
    """Worker shutdown hook."""
    await ctx["http_client"].aclose()
    logger.info("Notification worker shutting down...")


class WorkerSettings:
    """ARQ worker settings."""

    # Use actual function references, not strings
    functions = [send_notification]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = redis_settings

    # Job configuration
    max_jobs = 10
    job_timeout = 60
    keep_result = 3600  # Keep results for 1 hour
    retry_jobs = True
    max_tries = 3

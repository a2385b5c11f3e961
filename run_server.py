import os

import uvicorn

from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def configure_logging() -> None:
    """
    Configure process logging before uvicorn starts. Controlled by:
    - WEATHERGUIDE_LOG_LEVEL (default INFO)
    - WEATHERGUIDE_JOB_NAME (default weatherguide-api)
    """
    setup_logging(
        level=os.getenv("WEATHERGUIDE_LOG_LEVEL", "INFO").upper(),
        job_name=os.getenv("WEATHERGUIDE_JOB_NAME", "weatherguide-api"),
    )


if __name__ == "__main__":
    configure_logging()
    logger.info("Starting WeatherGuide API")

    uvicorn.run(
        "weatherguide.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
        log_config=None,
    )

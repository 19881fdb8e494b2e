import logging

from src.app import AppSettings, build_review_service, configure_logging
from src.review import ReviewItemService

__all__ = ["main", "ReviewItemService"]

LOGGER = logging.getLogger(__name__)


def main() -> None:
    """Entry point: prepare the database and verify the service can be wired."""
    settings = AppSettings.from_env()
    configure_logging(settings.log_level)
    build_review_service(settings)
    LOGGER.info("%s is ready in %s mode.", settings.app_name, settings.app_env)


if __name__ == "__main__":
    main()

import logging
import sys
from typing import Annotated
from dishka import Provider, provide, Scope, FromComponent

from core.environment.config import Settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LoggerProvider(Provider):
    """
    Provider for the service logger.

    Root logging is configured once on stdout. Level and logger name come
    from settings.
    """
    component = "logger"

    @provide(scope=Scope.APP)
    def get_logger(
        self,
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> logging.Logger:
        """
        Provide configured logger instance.

        Parameters
        ----------
        settings : Settings
            Application settings

        Returns
        -------
        logging.Logger
            Logger shared by the sync services
        """
        if not logging.getLogger().handlers:
            logging.basicConfig(
                format=LOG_FORMAT,
                handlers=[logging.StreamHandler(sys.stdout)]
            )

        logger = logging.getLogger(settings.logger_name)
        logger.setLevel(settings.log_level.upper())
        return logger



import logging
import sys

from loguru import logger
from rich.traceback import install as rich_tb_install

_LOG_FORMAT = (
    '<green>{time:YYYY-MM-DD HH:mm:ss}</green> | '
    '<level>{level: <8}</level> | '
    '<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - '
    '<level>{message}</level>'
)

# dnspython does not log, asyncio is the only library that does
_NOISEY_LOGGERS = ('asyncio',)

class _InterceptHandler(logging.Handler):
    """
    Routes stdlib logging records (asyncio) into loguru
    so every message shares one sink and one format.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )



def configure_lib_logger(
    *,
    level_name: str = "WARNING",
    rich_tracebacks: bool = False,
) -> None:
    '''
    Configures the root logger of zonesweep when run from the CLI.
    Logs are written to stderr, stdout is reserved for the records
    themselves so output can be piped into other tools.

    Parameters
    ----------
    level_name : str, optional
        by default "WARNING"
    rich_tracebacks : bool, optional
        by default False
    '''
    root_logger = logging.getLogger()
    root_logger.handlers = [_InterceptHandler()]
    root_logger.setLevel(level_name)

    for handle in _NOISEY_LOGGERS:
        logging.getLogger(handle).handlers = [_InterceptHandler()]
        logging.getLogger(handle).setLevel(level_name)

    logger.remove()
    logger.add(
        sys.stderr,
        format=_LOG_FORMAT,
        level=level_name,
        colorize=True,
        enqueue=True,
        backtrace=False,
        diagnose=False,
        catch=True,
    )
    if rich_tracebacks:
        rich_tb_install(show_locals=True, word_wrap=True)

    logger.debug('zonesweep logger configured.')

def disable_lib_logger() -> None:
    '''
    Turns off the zonesweep logger
    for when it is used as a library.
    '''
    logger.remove()
    logging.getLogger().handlers = []
    for handle in _NOISEY_LOGGERS:
        logging.getLogger(handle).handlers = []

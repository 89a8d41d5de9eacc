import logging
import sys

# Third-party loggers that flood the output below WARNING.
_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "neo4j", "pdfminer")


class _ContextFormatter(logging.Formatter):
    """Appends the keyword fields given to a Log call as sorted key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "context", None)
        if not context:
            return message
        fields = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{message} | {fields}"


class Log:
    """Centralized logging with structured format.

    Keyword arguments become context fields: `Log.info("Chunk stored", session_id=sid)`.
    """

    _logger: logging.Logger = logging.getLogger("lexigraph")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        level = log_level.upper()
        cls._logger.setLevel(level)
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                _ContextFormatter("%(asctime)s [%(levelname)s] %(threadName)s %(message)s")
            )
            cls._logger.addHandler(handler)
        if level != "DEBUG":
            for name in _NOISY_LOGGERS:
                logging.getLogger(name).setLevel(logging.WARNING)

    @classmethod
    def info(cls, message: str, **context: object) -> None:
        cls._logger.info(message, extra={"context": context})

    @classmethod
    def error(cls, message: str, **context: object) -> None:
        cls._logger.error(message, extra={"context": context})

    @classmethod
    def warning(cls, message: str, **context: object) -> None:
        cls._logger.warning(message, extra={"context": context})

    @classmethod
    def debug(cls, message: str, **context: object) -> None:
        cls._logger.debug(message, extra={"context": context})

    @classmethod
    def exception(cls, message: str, **context: object) -> None:
        """Log at error level with the active exception's traceback."""
        cls._logger.exception(message, extra={"context": context})

# backoffice/notify.py
# Fire-and-forget user notifications. The engine only ever calls success()/error()
# and never waits on delivery; the default surface is the application log.
import logging
from typing import Protocol

logger = logging.getLogger("uvicorn.error")


class Notifier(Protocol):
    def success(self, message: str) -> None: ...
    def error(self, message: str) -> None: ...


class LogNotifier:
    def success(self, message: str) -> None:
        logger.info("[NOTIFY] %s", message)

    def error(self, message: str) -> None:
        logger.warning("[NOTIFY] %s", message)

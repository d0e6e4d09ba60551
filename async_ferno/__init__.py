import logging

from .client import AsyncFernoClient  # noqa
from .models import FernoQuery, ServiceIdentity  # noqa

root_logger = logging.getLogger("async_ferno")
if root_logger.level == logging.NOTSET:
    root_logger.setLevel(logging.WARN)

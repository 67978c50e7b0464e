import logging
import sys

from dev_browser.config import CONFIG


def setup_logging(log_level: str | None = None) -> logging.Logger:
	"""Attach a single stream handler to the dev_browser logger.

	Safe to call more than once; the handler is only installed the first time.
	"""
	level_name = (log_level or CONFIG.DEV_BROWSER_LOGGING_LEVEL).upper()
	level = getattr(logging, level_name, logging.INFO)

	logger = logging.getLogger('dev_browser')
	if not logger.handlers:
		handler = logging.StreamHandler(sys.stdout)
		handler.setFormatter(logging.Formatter('%(levelname)-8s [%(name)s] %(message)s'))
		logger.addHandler(handler)
	logger.setLevel(level)
	logger.propagate = False

	# third-party chatter
	for name in ('playwright', 'asyncio'):
		logging.getLogger(name).setLevel(logging.WARNING)

	return logger

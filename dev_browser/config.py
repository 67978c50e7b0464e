"""Environment-driven configuration for dev-browser."""

import os

from dotenv import load_dotenv

load_dotenv()


class Config:
	"""Reads environment variables lazily so tests can patch them per case."""

	@property
	def DEV_BROWSER_LOGGING_LEVEL(self) -> str:
		return os.getenv('DEV_BROWSER_LOGGING_LEVEL', 'info').lower()

	@property
	def DEV_BROWSER_MAX_TEXT_LENGTH(self) -> int:
		return int(os.getenv('DEV_BROWSER_MAX_TEXT_LENGTH', '100'))

	@property
	def DEV_BROWSER_MAX_ATTRIBUTE_LENGTH(self) -> int:
		return int(os.getenv('DEV_BROWSER_MAX_ATTRIBUTE_LENGTH', '500'))

	@property
	def DEV_BROWSER_FRAME_TIMEOUT(self) -> float:
		return float(os.getenv('DEV_BROWSER_FRAME_TIMEOUT', '5.0'))


CONFIG = Config()

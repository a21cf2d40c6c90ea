"""Configuration management."""
import logging
import os


class Config:
    def __init__(self):
        self.REDIS_URL: str = os.environ.get("REDIS_URL", "")
        self.SHEETS_API_URL: str = os.environ.get("SHEETS_API_URL", "")
        self.SYNC_TIMEOUT: float = float(os.environ.get("SYNC_TIMEOUT", "35"))
        self.GLOBAL_ADS_PERCENT: float = float(os.environ.get("GLOBAL_ADS_PERCENT", "0"))
        self.MIN_MARGIN_ALERT: float = float(os.environ.get("MIN_MARGIN_ALERT", "15"))
        self.MAX_FEE_LOGS: int = int(os.environ.get("MAX_FEE_LOGS", "500"))
        self.BREAK_EVEN_LOW: float = float(os.environ.get("BREAK_EVEN_LOW", "1"))
        self.BREAK_EVEN_HIGH: float = float(os.environ.get("BREAK_EVEN_HIGH", "10000"))
        self.BREAK_EVEN_ITERATIONS: int = int(os.environ.get("BREAK_EVEN_ITERATIONS", "100"))
        self.LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "WARNING")

    def validate(self):
        if self.BREAK_EVEN_LOW >= self.BREAK_EVEN_HIGH:
            raise ValueError("BREAK_EVEN_LOW must be below BREAK_EVEN_HIGH")
        if self.BREAK_EVEN_ITERATIONS <= 0:
            raise ValueError("BREAK_EVEN_ITERATIONS must be positive")
        if self.MAX_FEE_LOGS <= 0:
            raise ValueError("MAX_FEE_LOGS must be positive")

    def configure_logging(self):
        logging.basicConfig(
            level=getattr(logging, self.LOG_LEVEL.upper(), logging.WARNING),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


config = Config()

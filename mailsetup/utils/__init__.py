from mailsetup.utils.decorators import retry_on_fail, Singleton
from mailsetup.utils.logger import Logger

__all__ = ["retry_on_fail", "Logger", "Singleton"]

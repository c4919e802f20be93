# logconfig.py - 로그 설정 (모든 커맨드 공용)

import logging
from logging.handlers import RotatingFileHandler

DEFAULT_LOG_PATH = "debug_log.txt"


class SafeRotatingFileHandler(RotatingFileHandler):
    def doRollover(self):
        try:
            super().doRollover()
        except PermissionError as e:
            logging.warning(f"[SafeRotatingFileHandler] 롤오버 실패 (무시됨): {e}")
        except Exception as e:
            logging.warning(f"[SafeRotatingFileHandler] 예상치 못한 오류 (무시됨): {e}")


# 루트 로거: 파일은 DEBUG 전부, 콘솔은 WARNING 이상 (verbose면 DEBUG)
def setup_logging(verbose: bool = False, log_path: str = DEFAULT_LOG_PATH):
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    file_format = logging.Formatter("[%(levelname)s] %(message)s")

    if log_path:
        file_handler = SafeRotatingFileHandler(
            log_path,
            mode='a',
            maxBytes=1_000_000_000,
            backupCount=100,
            encoding='utf-8',
            errors='backslashreplace'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(file_format)
    logger.addHandler(console_handler)

    return logger

"""日志配置"""

import sys

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(level="INFO", log_dir="logs"):
    """控制台输出 + 按天切分的日志文件，保留30天"""
    logger.remove()  # 清除默认的控制台输出
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=level)
    if log_dir:
        logger.add(
            f"{log_dir}/wechat_transfer_{{time:YYYY-MM-DD}}.log",
            rotation="00:00",
            retention="30 days",
            format=FILE_FORMAT,
            level=level,
            encoding="utf-8",
        )

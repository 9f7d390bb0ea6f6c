import logging
import sys


# boto3/botocore 는 DEBUG 에서 요청 본문까지 찍기 때문에 -vv 일 때만 연다.
_NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")


def setup_logging(verbosity: int = 0) -> None:
    level = logging.INFO
    if verbosity >= 1:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )

    noisy_level = logging.DEBUG if verbosity >= 2 else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

"""
aws_clients
-----------

boto3 세션/클라이언트 생성을 한 곳에서 담당하는 모듈.

boto3 Session 은 스레드 안전하지 않으므로 메인 스레드에서 미리 클라이언트를 만들어 두고,
만들어진 클라이언트(스레드 안전)만 병렬 작업에 넘긴다.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional, Tuple

import boto3
from botocore.config import Config

from .logging_utils import get_logger


logger = get_logger(__name__)


class AwsClients:
    """
    (service, region) 단위로 boto3 클라이언트를 캐시한다.
    """

    def __init__(self, profile: Optional[str] = None, proxy_url: Optional[str] = None) -> None:
        self._profile = profile
        self._proxy_url = proxy_url
        self._session: Optional[boto3.session.Session] = None
        self._clients: Dict[Tuple[str, str], Any] = {}
        self._lock = threading.Lock()

    def _client_config(self) -> Config:
        kwargs: Dict[str, Any] = {"retries": {"max_attempts": 5, "mode": "standard"}}
        if self._proxy_url:
            kwargs["proxies"] = {"https": self._proxy_url}
        return Config(**kwargs)

    def _get_session(self) -> boto3.session.Session:
        if self._session is None:
            logger.debug("boto3 세션 생성 (profile=%s)", self._profile or "(default)")
            self._session = boto3.session.Session(profile_name=self._profile)
        return self._session

    def client(self, service: str, region: str) -> Any:
        key = (service, region)
        with self._lock:
            if key not in self._clients:
                logger.debug("boto3 클라이언트 생성: %s (%s)", service, region)
                self._clients[key] = self._get_session().client(
                    service,
                    region_name=region,
                    config=self._client_config(),
                )
            return self._clients[key]

    def elasticbeanstalk(self, region: str) -> Any:
        return self.client("elasticbeanstalk", region)

    def s3(self, region: str) -> Any:
        return self.client("s3", region)

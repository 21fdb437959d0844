"""Tarball 源拉取 - 对原始字节做 sha256，十六进制摘要即修订"""

from __future__ import annotations

import logging
import urllib.error
from http.client import HTTPException

from lon.core.exceptions import NetworkError, RefNotFound, ValidationError
from lon.core.models import LockEntry, SourceSpec
from lon.utils.hashing import hash_chunks
from lon.utils.http import HttpClient

logger = logging.getLogger(__name__)


def download_hash(http: HttpClient, url: str, *, timeout: int) -> tuple[str, str]:
    """流式下载并计算 sha256，返回 (SRI, 十六进制摘要)

    Raises:
        RefNotFound: HTTP 404
        NetworkError: 其他 HTTP 错误、连接失败或超时
    """
    try:
        return hash_chunks(http.iter_bytes(url, timeout=timeout))
    except urllib.error.HTTPError as e:
        if e.code == 404:
            raise RefNotFound(f"下载地址不存在: {url}") from e
        raise NetworkError(f"下载失败 (HTTP {e.code}): {url}") from e
    except ValidationError as e:
        raise NetworkError(str(e)) from e
    except (OSError, HTTPException, ValueError) as e:
        # InvalidURL / IncompleteRead 等不属于 OSError
        raise NetworkError(f"下载失败: {url}: {e}") from e


class TarballFetcher:
    """tarball: 无引用解析，直接下载字面地址"""

    def __init__(self, http: HttpClient, *, timeout: int = 600) -> None:
        self.http = http
        self.timeout = timeout

    def resolve(self, spec: SourceSpec, revision: str | None = None) -> LockEntry:
        logger.debug("下载 %s: %s", spec.name, spec.url)
        sri, hexdigest = download_hash(self.http, spec.url, timeout=self.timeout)
        return LockEntry(name=spec.name, kind=spec.kind, revision=hexdigest, hash=sri)

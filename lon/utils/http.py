"""JSON-over-HTTP 客户端

职责:
- HttpClient 协议: request() 发送 JSON 请求，iter_bytes() 流式下载
- UrllibClient: 基于 urllib.request 的默认实现
- raise_for_status(): 托管平台 HTTP 状态码 → ForgeError 映射

非 2xx 响应由 request() 原样返回，传输层错误以 OSError 抛出，
由调用方在各自边界转换为 FetchError / ForgeError。
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from collections.abc import Iterator
from dataclasses import dataclass, field
from http.client import HTTPException
from typing import Any, Protocol

from lon.core.exceptions import ApiError, AuthFailed, RateLimited
from lon.utils.net import validate_url_scheme

logger = logging.getLogger(__name__)

USER_AGENT = "LonBot"
CHUNK_SIZE = 64 * 1024
DEFAULT_TIMEOUT = 60


@dataclass
class HttpResponse:
    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str:
        """大小写不敏感的响应头读取"""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return ""

    def json(self) -> Any:
        if not self.body:
            return None
        return json.loads(self.body.decode("utf-8"))


class HttpClient(Protocol):
    """HTTP 客户端协议（测试时注入假实现）"""

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> HttpResponse:
        ...

    def iter_bytes(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> Iterator[bytes]:
        ...


class UrllibClient:
    """基于 urllib.request 的默认实现"""

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> HttpResponse:
        validate_url_scheme(url, context="HTTP 请求")
        data = None
        all_headers = {"User-Agent": USER_AGENT, **(headers or {})}
        if json_body is not None:
            data = json.dumps(json_body).encode("utf-8")
            all_headers["Content-Type"] = "application/json"

        req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
        logger.debug("HTTP %s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310
                return HttpResponse(
                    status=resp.status,
                    body=resp.read(),
                    headers=dict(resp.headers.items()),
                )
        except urllib.error.HTTPError as e:
            return HttpResponse(
                status=e.code,
                body=e.read() or b"",
                headers=dict(e.headers.items()) if e.headers else {},
            )

    def iter_bytes(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> Iterator[bytes]:
        """分块读取响应体；HTTP 错误以 urllib.error.HTTPError 抛出"""
        validate_url_scheme(url, context="下载")
        all_headers = {"User-Agent": USER_AGENT, **(headers or {})}
        req = urllib.request.Request(url, headers=all_headers)
        logger.debug("下载 %s", url)
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310
            while True:
                chunk = resp.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk


# =========================================================================
# 状态码映射
# =========================================================================


def raise_for_status(resp: HttpResponse, context: str) -> HttpResponse:
    """非 2xx 响应映射为 ForgeError 子类，2xx 原样返回

    401/403 → AuthFailed；403 且 X-RateLimit-Remaining 为 0 或 429 → RateLimited；
    其余 → ApiError。
    """
    if resp.ok:
        return resp

    detail = _error_detail(resp)
    message = f"{context} 失败 (HTTP {resp.status}): {detail}"
    if resp.status == 429 or (
        resp.status == 403 and resp.header("X-RateLimit-Remaining") == "0"
    ):
        raise RateLimited(message, status=resp.status)
    if resp.status in (401, 403):
        raise AuthFailed(message, status=resp.status)
    raise ApiError(message, status=resp.status)


def _error_detail(resp: HttpResponse) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.body[:200].decode("utf-8", errors="replace")
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data)[:200]
    return str(data)[:200]


def send_json(
    client: HttpClient,
    method: str,
    url: str,
    *,
    headers: dict[str, str],
    json_body: Any = None,
    context: str,
    timeout: int = DEFAULT_TIMEOUT,
) -> Any:
    """发送请求并返回解析后的 JSON，传输错误与非 2xx 均转换为 ForgeError"""
    try:
        resp = client.request(
            method, url, headers=headers, json_body=json_body, timeout=timeout,
        )
    except (OSError, HTTPException) as e:
        raise ApiError(f"{context} 请求失败: {e}") from e
    raise_for_status(resp, context)
    try:
        return resp.json()
    except ValueError as e:
        raise ApiError(f"{context} 返回的不是合法 JSON: {e}", status=resp.status) from e


def json_field(data: Any, key: str, context: str) -> Any:
    """从响应对象中取必需字段，缺失、为空或响应不是对象时抛 ApiError"""
    value = data.get(key) if isinstance(data, dict) else None
    if value is None or value == "":
        raise ApiError(f"{context} 返回缺少字段 {key}")
    return value

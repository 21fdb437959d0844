"""统一异常体系

所有业务异常继承 LonError，按来源分为三类：
- ConfigError: 声明文件 / 锁文件 / 环境配置不一致，整条命令立即中止
- FetchError: 单个源的拉取失败，批量更新时只影响该源
- ForgeError: 代码托管平台 API 失败，bot 运行直接失败

IO 错误直接使用内置 OSError 原样抛出。
"""

from __future__ import annotations


class LonError(Exception):
    """lon 基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(LonError):
    """声明文件、锁文件或环境变量缺失 / 内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(LonError):
    """用户输入校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


# =========================================================================
# 拉取异常
# =========================================================================


class FetchError(LonError):
    """源解析或拉取失败，不在内部重试，由调用方决定"""

    code = "FETCH_ERROR"

    def __init__(self, message: str, *, name: str = "") -> None:
        super().__init__(message)
        self.name = name


class NetworkError(FetchError):
    """网络不可达、超时或远端命令失败（可由调用方重试）"""

    code = "NETWORK_ERROR"


class RefNotFound(FetchError):
    """远端不存在指定的分支 / 标签 / 地址"""

    code = "REF_NOT_FOUND"


class AmbiguousRef(FetchError):
    """引用同时匹配多个分支或标签"""

    code = "AMBIGUOUS_REF"


class HashComputationError(FetchError):
    """内容哈希计算失败"""

    code = "HASH_ERROR"


# =========================================================================
# 托管平台异常
# =========================================================================


class ForgeError(LonError):
    """代码托管平台操作失败"""

    code = "FORGE_ERROR"

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class AuthFailed(ForgeError):
    """令牌无效或权限不足"""

    code = "AUTH_FAILED"


class RateLimited(ForgeError):
    """触发平台限流"""

    code = "RATE_LIMITED"


class ApiError(ForgeError):
    """其他 API / 推送错误"""

    code = "API_ERROR"

"""lon - 源码依赖锁定工具"""

__version__ = "0.1.0"

"""
统一错误类型
网关与看板共用同一套错误分类，HTTP 层统一渲染为 {"error": message}
"""

from typing import Optional


class GatewayError(Exception):
    """所有可预期错误的基类，status_code 即对外 HTTP 状态码"""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(GatewayError):
    """缺少 API Key 等服务端配置，只影响依赖它的接口"""

    status_code = 500


class ValidationError(GatewayError):
    """请求缺少必填参数或参数格式错误"""

    status_code = 400


class UpstreamError(GatewayError):
    """第三方返回非成功状态码"""

    def __init__(self, provider: str, status_code: int, detail: str):
        super().__init__(f"{provider} API error: {status_code} - {detail}", status_code)
        self.provider = provider
        self.detail = detail


class UpstreamTimeoutError(GatewayError, TimeoutError):
    """单次上游调用超过固定超时"""

    status_code = 504


class TransportError(GatewayError):
    """网络层失败（连接拒绝、DNS、连接重置等）"""

    status_code = 502

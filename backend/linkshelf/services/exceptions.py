"""业务异常

每个异常携带 HTTP 状态码和对外消息，由 main.py 中注册的异常处理器统一
渲染为 {"error": message}。
"""


class LinkShelfError(Exception):
    """业务异常基类"""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LinkShelfError):
    """输入缺失或格式错误（400，消息原样返回）"""
    status_code = 400
    default_message = "Invalid request"


class AuthError(LinkShelfError):
    """凭证缺失 / 无效 / 过期（401，不泄露细节）"""
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(LinkShelfError):
    """资源不存在"""
    status_code = 404
    default_message = "Not found"


class UpstreamFetchError(LinkShelfError):
    """网页元数据抓取失败，只在元数据解析内部流转，不会返回给调用方"""
    status_code = 502
    default_message = "Failed to fetch page metadata"


class StoreError(LinkShelfError):
    """持久化层失败（500，对外只返回通用消息）"""
    status_code = 500
    default_message = "Internal server error"

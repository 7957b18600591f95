"""商家转账异常定义"""


class WeChatTransferError(Exception):
    """所有转账异常的基类"""


class ConfigurationError(WeChatTransferError):
    """商户配置缺失或证书/密钥无法加载，启动时即失败，不可重试"""


class UnknownMerchantError(ConfigurationError):
    """未配置的商户编号"""

    def __init__(self, merchant_key):
        super().__init__(f"未配置的商户: {merchant_key}")
        self.merchant_key = merchant_key


class ValidationError(WeChatTransferError):
    """请求参数不合法，需调用方修正后重新发起"""


class FieldTooLongError(ValidationError):
    """字段超出微信支付的长度限制"""

    def __init__(self, field, limit, actual):
        super().__init__(f"字段 {field} 超出长度限制: 最多{limit}字节, 实际{actual}字节")
        self.field = field
        self.limit = limit
        self.actual = actual


class EncryptionError(WeChatTransferError):
    """敏感字段加密失败，请求不会被签名和发送"""


class TransportError(WeChatTransferError):
    """网络/TLS/超时等传输层错误"""


class ProtocolError(WeChatTransferError):
    """微信支付返回的报文无法解析"""

    def __init__(self, reason, raw=None):
        super().__init__(reason)
        self.reason = reason
        self.raw = raw

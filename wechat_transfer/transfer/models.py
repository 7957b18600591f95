"""转账请求和结果"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Union

Amount = Union[Decimal, str, int, float]


@dataclass(frozen=True)
class PeerTransfer:
    """企业付款到零钱

    Args:
        merchant_key: 商户编号，使用默认商户时传入 DEFAULT_MERCHANT
        partner_trade_no: 商户订单号，由调用方生成并保证唯一，重试时必须使用原单号
        openid: 收款用户在 mch_appid 下的 openid
        amount: 付款金额，单位为元
        desc: 付款备注，最多100字节
        re_user_name: 收款用户真实姓名，传入时强制校验实名
        device_info: 微信支付分配的终端设备号
        app_key: 应用编号，使用商户绑定的其他 appid 付款时传入，默认使用商户的默认 appid
    """

    merchant_key: int
    partner_trade_no: str
    openid: str
    amount: Amount
    desc: str
    re_user_name: str | None = field(default=None, repr=False)
    device_info: str | None = None
    app_key: int | None = None


@dataclass(frozen=True)
class BankCardTransfer:
    """企业付款到银行卡，卡号和姓名会在签名前使用微信支付公钥加密"""

    merchant_key: int
    partner_trade_no: str
    bank_no: str = field(repr=False)
    true_name: str = field(repr=False)
    bank_code: str
    amount: Amount
    desc: str


@dataclass(frozen=True)
class BankCardQuery:
    """查询企业付款到银行卡"""

    merchant_key: int
    partner_trade_no: str


@dataclass(frozen=True)
class PeerTransferQuery:
    """查询企业付款到零钱"""

    merchant_key: int
    partner_trade_no: str
    # 与付款时使用的应用编号一致
    app_key: int | None = None


TransferRequest = Union[PeerTransfer, BankCardTransfer, BankCardQuery, PeerTransferQuery]


@dataclass(frozen=True)
class Success:
    """请求成功，data 为微信支付返回的业务数据"""

    data: Mapping[str, str]

    ok = True

    @property
    def payment_no(self):
        return self.data.get("payment_no")

    @property
    def status(self):
        return self.data.get("status")

    def to_dict(self):
        return {"code": 0, "msg": "成功", "kind": "success", "data": dict(self.data)}


@dataclass(frozen=True)
class BusinessFailure:
    """业务失败(余额不足、未实名等)，属于正常结果而不是异常

    retryable 为 True 时可使用原商户订单号重试，不能更换单号
    """

    code: str
    message: str
    retryable: bool = False
    data: Mapping[str, str] = field(default_factory=dict)

    ok = False

    def to_dict(self):
        return {
            "code": -1 if self.retryable else -2,
            "msg": f"业务错误({self.code}): {self.message}",
            "kind": "business_failure",
            "err_code": self.code,
            "err_code_des": self.message,
            "retryable": self.retryable,
            "data": dict(self.data),
        }


@dataclass(frozen=True)
class ProtocolFailure:
    """报文异常，微信侧的处理结果未知，需人工排查或通过查询接口确认，不能直接重试"""

    reason: str
    data: Mapping[str, str] = field(default_factory=dict)
    raw: str | None = None

    ok = False

    def to_dict(self):
        return {
            "code": -3,
            "msg": f"通信错误: {self.reason}",
            "kind": "protocol_failure",
            "data": dict(self.data),
            "raw": self.raw,
        }


@dataclass(frozen=True)
class TransportFailure:
    """网络/TLS/超时错误，转账结果未知，需先查询再决定是否重试"""

    cause: str

    ok = False

    def to_dict(self):
        return {"code": -1, "msg": f"网络错误: {self.cause}", "kind": "transport_failure"}


TransferResult = Union[Success, BusinessFailure, ProtocolFailure, TransportFailure]

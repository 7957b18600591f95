"""请求参数构造

每种请求对应一张字段映射表(请求属性 -> 接口字段名、是否必填、格式化规则、长度限制)，
微信支付各接口的字段命名并不统一(例如商户号在付款到零钱接口中为 mchid，
在付款到银行卡接口中为 mch_id)，字段名写错时微信支付不会给出明确错误，
所以映射规则必须逐个接口显式列出。
"""

import re
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Callable

from loguru import logger

from ..exceptions import FieldTooLongError, ValidationError
from ..sign import generate_nonce
from .constants import (
    BANK_CODES,
    CHECK_NAME_FORCE_CHECK,
    CHECK_NAME_NO_CHECK,
    MAX_DESC_BYTES,
    MAX_DEVICE_INFO_LENGTH,
    PARTNER_TRADE_NO_PATTERN,
)
from .models import BankCardQuery, BankCardTransfer, PeerTransfer, PeerTransferQuery

# 日志中需要隐藏的字段
MASKED_FIELDS = {"enc_bank_no", "enc_true_name", "re_user_name"}

# XML 1.0 不允许出现的字符，无法放入请求报文
XML_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def to_fen(amount) -> int:
    """金额(元)转换为分，超出分的部分直接舍去，不做四舍五入

    >>> to_fen("12.34")
    1234
    >>> to_fen("0.005")
    0
    """
    if isinstance(amount, bool):
        raise ValidationError(f"金额格式错误: {amount!r}")
    if isinstance(amount, float):
        # 避免 0.1 被转换为 0.1000000000000000055...
        amount = str(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"金额格式错误: {amount!r}") from None
    if not value.is_finite():
        raise ValidationError(f"金额格式错误: {amount!r}")
    return int((value * 100).quantize(Decimal(1), rounding=ROUND_DOWN))


def format_amount(amount) -> str:
    fen = to_fen(amount)
    if fen <= 0:
        raise ValidationError(f"付款金额必须大于0分: {amount!r}")
    return str(fen)


def _check_xml_chars(wire, value):
    if XML_ILLEGAL_CHARS.search(value):
        raise ValidationError(f"字段 {wire} 包含XML不允许的字符")


def mask_fields(fields):
    """隐藏敏感字段后用于日志输出"""
    return {key: "***" if key in MASKED_FIELDS else value for key, value in fields.items()}


@dataclass(frozen=True)
class FieldSpec:
    """请求属性到接口字段的映射规则"""

    attr: str
    wire: str
    required: bool = True
    fmt: Callable = str
    max_bytes: int | None = None
    pattern: str | None = None
    choices: frozenset | None = None

    def render(self, value) -> str:
        rendered = self.fmt(value)
        _check_xml_chars(self.wire, rendered)
        if self.max_bytes is not None:
            size = len(rendered.encode("utf-8"))
            if size > self.max_bytes:
                raise FieldTooLongError(self.wire, self.max_bytes, size)
        if self.pattern is not None and not re.fullmatch(self.pattern, rendered):
            raise ValidationError(f"字段 {self.wire} 格式错误: {rendered}")
        if self.choices is not None and rendered not in self.choices:
            raise ValidationError(f"字段 {self.wire} 取值无效: {rendered}")
        return rendered


@dataclass(frozen=True)
class VariantSpec:
    """单个接口的参数规则"""

    # 商户号字段名
    merchant_field: str
    fields: tuple
    # 商户 appid 字段名，不需要时为 None
    app_id_field: str | None = None
    # 需要根据多个属性共同决定的字段
    extra: Callable | None = None


def _peer_transfer_extra(request: PeerTransfer, merchant):
    fields = {}
    if merchant.spbill_create_ip:
        fields["spbill_create_ip"] = merchant.spbill_create_ip
    # NO_CHECK: 不校验真实姓名; FORCE_CHECK: 强校验真实姓名，二者互斥
    re_user_name = (request.re_user_name or "").strip()
    if re_user_name:
        _check_xml_chars("re_user_name", re_user_name)
        fields["check_name"] = CHECK_NAME_FORCE_CHECK
        fields["re_user_name"] = re_user_name
    else:
        fields["check_name"] = CHECK_NAME_NO_CHECK
    return fields


PARTNER_TRADE_NO = FieldSpec("partner_trade_no", "partner_trade_no", pattern=PARTNER_TRADE_NO_PATTERN)
AMOUNT = FieldSpec("amount", "amount", fmt=format_amount)
DESC = FieldSpec("desc", "desc", max_bytes=MAX_DESC_BYTES)

VARIANT_SPECS = {
    PeerTransfer: VariantSpec(
        merchant_field="mchid",
        app_id_field="mch_appid",
        fields=(
            PARTNER_TRADE_NO,
            FieldSpec("openid", "openid"),
            AMOUNT,
            DESC,
            FieldSpec("device_info", "device_info", required=False, max_bytes=MAX_DEVICE_INFO_LENGTH),
        ),
        extra=_peer_transfer_extra,
    ),
    BankCardTransfer: VariantSpec(
        merchant_field="mch_id",
        fields=(
            PARTNER_TRADE_NO,
            # 卡号和姓名由加密步骤校验是否存在
            FieldSpec("bank_no", "enc_bank_no", required=False),
            FieldSpec("true_name", "enc_true_name", required=False),
            FieldSpec("bank_code", "bank_code", choices=frozenset(BANK_CODES)),
            AMOUNT,
            DESC,
        ),
    ),
    BankCardQuery: VariantSpec(
        merchant_field="mch_id",
        fields=(PARTNER_TRADE_NO,),
    ),
    PeerTransferQuery: VariantSpec(
        merchant_field="mch_id",
        app_id_field="appid",
        fields=(PARTNER_TRADE_NO,),
    ),
}


def _is_absent(value):
    return value is None or (isinstance(value, str) and not value.strip())


def build_params(request, merchant) -> dict[str, str]:
    """构造请求参数，按参数名排序返回，不包含签名

    可选字段为空时不传，不会以空字符串出现在请求中
    """
    spec = VARIANT_SPECS.get(type(request))
    if spec is None:
        raise ValidationError(f"不支持的请求类型: {type(request).__name__}")

    fields = {
        spec.merchant_field: merchant.mch_id,
        "nonce_str": generate_nonce(),
    }
    if spec.app_id_field:
        fields[spec.app_id_field] = merchant.resolve_app_id(request.app_key)

    missing_fields = []
    for field_spec in spec.fields:
        value = getattr(request, field_spec.attr)
        if _is_absent(value):
            if field_spec.required:
                missing_fields.append(field_spec.attr)
            continue
        fields[field_spec.wire] = field_spec.render(value)
    if missing_fields:
        raise ValidationError(f"缺少必填字段: {', '.join(missing_fields)}")

    if spec.extra is not None:
        fields.update(spec.extra(request, merchant))

    params = dict(sorted(fields.items()))
    logger.debug(f"请求参数: {mask_fields(params)}")
    return params
